"""
utils/qr_payloads.py
────────────────────────────────────────────
Payload-Formate für PixelPulse QR.

- encode():   Intent + Felder  → Payload-String (WIFI:, mailto:, BEGIN:VCARD, …)
- classify(): Payload-String   → Intent
- parse():    Payload + Intent → Felder (Umkehrung von encode)

Alle drei Funktionen sind rein, zustandslos und werfen bei kaputten
Payloads keine Fehler: fehlende Marker ergeben leere Strings.
Jeder Intent steht genau einmal in _CODECS (Felder-Klasse, Encoder, Parser).
────────────────────────────────────────────
"""

from __future__ import annotations

import re
import logging
from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Tuple, Type, Union
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# 🏷️ Intents
# ─────────────────────────────────────────────
class Intent(str, Enum):
    TEXT = "text"
    URL = "url"
    EMAIL = "email"
    WIFI = "wifi"
    VCARD = "vcard"
    LOCATION = "location"
    SMS = "sms"
    CALL = "call"
    EVENT = "event"
    PAYMENT = "payment"


FieldBag = Dict[str, str]

PAYPAL_MARKER = "paypal.com/paypalme/"
PAYPAL_BASE_URL = "https://www.paypal.com/paypalme/"


# ─────────────────────────────────────────────
# 🔧 Hilfsfunktionen (Escaping, Query-Parameter, Zeilen)
# ─────────────────────────────────────────────
def _pct(value: str) -> str:
    """Prozent-Kodierung wie encodeURIComponent."""
    return quote(value, safe="!~*'()")


def _with_query(base: str, params: List[Tuple[str, str]]) -> str:
    """Hängt nur nicht-leere Parameter an: erster mit '?', alle weiteren mit '&'."""
    parts = [f"{key}={_pct(value)}" for key, value in params if value]
    if not parts:
        return base
    return f"{base}?{'&'.join(parts)}"


def _query_param(payload: str, key: str) -> str:
    _, sep, query = payload.partition("?")
    if not sep:
        return ""
    query = query.split("#", 1)[0]
    for pair in query.split("&"):
        k, _, v = pair.partition("=")
        if k.strip().lower() == key:
            return unquote(v)
    return ""


def _scheme_body(payload: str, scheme: str) -> Optional[str]:
    """Rest nach 'scheme:' (case-insensitiv), sonst None."""
    text = payload.lstrip()
    if text[: len(scheme)].lower() == scheme:
        return text[len(scheme):]
    return None


_WIFI_SPECIAL = re.compile(r'([\\;,:"])')
_WIFI_ESCAPED = re.compile(r"\\(.)", re.S)


def _wifi_escape(value: str) -> str:
    return _WIFI_SPECIAL.sub(r"\\\1", value)


def _wifi_value(payload: str, key: str) -> str:
    match = re.search(rf"(?:^|[:;]){key}:((?:\\.|[^;\\])*)", payload, re.I | re.S)
    if not match:
        return ""
    return _WIFI_ESCAPED.sub(r"\1", match.group(1))


_TEXT_ESCAPED = re.compile(r"\\([nN,;\\])")


def _text_escape(value: str) -> str:
    """Backslash und Zeilenumbrüche für vCard/vEvent-Zeilen."""
    value = value.replace("\\", "\\\\")
    return re.sub(r"\r\n|\r|\n", r"\\n", value)


def _text_unescape(value: str) -> str:
    def _sub(match: "re.Match[str]") -> str:
        char = match.group(1)
        return "\n" if char in "nN" else char

    return _TEXT_ESCAPED.sub(_sub, value)


# ADR-Komponenten werden durch ';' getrennt, im Wert selbst als '\;'
_ADR_SPLIT = re.compile(r"(?<!\\);")


def _adr_escape(value: str) -> str:
    return _text_escape(value).replace(";", "\\;")


def _unfold(payload: str) -> str:
    # Fortsetzungszeilen (RFC 6350 / RFC 5545) beginnen mit Leerzeichen oder Tab
    return re.sub(r"\r?\n[ \t]", "", payload)


def _property(block: str, name: str) -> str:
    """Wert einer Zeile 'NAME[;PARAMS]:wert' oder ''."""
    match = re.search(rf"^{name}(?:;[^:\r\n]*)?:(.*?)\r?$", block, re.I | re.M)
    return match.group(1) if match else ""


# ─────────────────────────────────────────────
# 🧩 Felder pro Intent
# ─────────────────────────────────────────────
def _bag_key(f: Any) -> str:
    return f.metadata.get("key", f.name)


class _FieldsMixin:
    """Konvertierung zwischen typisierten Feldern und Field-Bag (str → str)."""

    intent: Intent

    @classmethod
    def from_dict(cls, bag: Optional[Mapping[str, Any]]):
        bag = bag or {}
        values: Dict[str, str] = {}
        for f in dataclass_fields(cls):
            raw = bag.get(_bag_key(f))
            if raw is None or raw == "":
                continue
            values[f.name] = str(raw)
        return cls(**values)

    def to_dict(self) -> FieldBag:
        return {_bag_key(f): getattr(self, f.name) for f in dataclass_fields(self)}


@dataclass(frozen=True)
class TextFields(_FieldsMixin):
    text: str = ""

    intent = Intent.TEXT


@dataclass(frozen=True)
class UrlFields(_FieldsMixin):
    url: str = ""

    intent = Intent.URL


@dataclass(frozen=True)
class EmailFields(_FieldsMixin):
    email: str = ""
    subject: str = ""
    body: str = ""

    intent = Intent.EMAIL


@dataclass(frozen=True)
class WifiFields(_FieldsMixin):
    ssid: str = ""
    password: str = ""
    security: str = "WPA"

    intent = Intent.WIFI


@dataclass(frozen=True)
class VCardFields(_FieldsMixin):
    name: str = ""
    phone: str = ""
    email: str = ""
    organization: str = ""
    title: str = ""
    url: str = ""
    address: str = ""

    intent = Intent.VCARD


@dataclass(frozen=True)
class LocationFields(_FieldsMixin):
    address: str = ""
    latitude: str = ""
    longitude: str = ""

    intent = Intent.LOCATION


@dataclass(frozen=True)
class SmsFields(_FieldsMixin):
    phone: str = ""
    message: str = ""

    intent = Intent.SMS


@dataclass(frozen=True)
class CallFields(_FieldsMixin):
    phone: str = ""

    intent = Intent.CALL


@dataclass(frozen=True)
class EventFields(_FieldsMixin):
    title: str = ""
    start: str = ""
    end: str = ""
    location: str = ""
    description: str = ""

    intent = Intent.EVENT


@dataclass(frozen=True)
class PaymentFields(_FieldsMixin):
    """
    payment_kind: "paypal" | "bitcoin" | "unknown".
    Im Field-Bag erscheint die Art zweimal: als 'paymentKind' (Formular)
    und als 'type' (Erkennungsergebnis).
    """

    payment_kind: str = field(default="unknown", metadata={"key": "paymentKind"})
    recipient: str = ""
    amount: str = ""
    note: str = ""

    intent = Intent.PAYMENT

    def to_dict(self) -> FieldBag:
        bag = super().to_dict()
        return {"type": self.payment_kind, **bag}


IntentFields = Union[
    TextFields, UrlFields, EmailFields, WifiFields, VCardFields,
    LocationFields, SmsFields, CallFields, EventFields, PaymentFields,
]


# ─────────────────────────────────────────────
# ✏️ Encoder
# ─────────────────────────────────────────────
def _encode_text(f: TextFields) -> str:
    return f.text


def _encode_url(f: UrlFields) -> str:
    return f.url


def _encode_email(f: EmailFields) -> str:
    return _with_query(f"mailto:{f.email}", [("subject", f.subject), ("body", f.body)])


def _encode_wifi(f: WifiFields) -> str:
    # Sicherheitstyp ist fest WPA, 'security' wird nur beim Lesen ausgewertet
    return f"WIFI:S:{_wifi_escape(f.ssid)};T:WPA;P:{_wifi_escape(f.password)};;"


def _encode_vcard(f: VCardFields) -> str:
    name = _text_escape(f.name)
    lines = ["BEGIN:VCARD", "VERSION:3.0", f"N:{name};;;", f"FN:{name}"]
    for prefix, value in (
        ("TEL", f.phone),
        ("EMAIL", f.email),
        ("ORG", f.organization),
        ("TITLE", f.title),
        ("URL", f.url),
    ):
        if value:
            lines.append(f"{prefix}:{_text_escape(value)}")
    if f.address:
        lines.append(f"ADR:;;{_adr_escape(f.address)};;;")
    lines.append("END:VCARD")
    return "\n".join(lines)


def _encode_location(f: LocationFields) -> str:
    return f"geo:0,0?q={_pct(f.address)}"


def _encode_sms(f: SmsFields) -> str:
    return _with_query(f"sms:{f.phone}", [("body", f.message)])


def _encode_call(f: CallFields) -> str:
    return f"tel:{f.phone}"


def _compact_datetime(value: str) -> str:
    return re.sub(r"[^0-9A-Za-z]", "", value)


def _encode_event(f: EventFields) -> str:
    lines = [
        "BEGIN:VEVENT",
        f"SUMMARY:{_text_escape(f.title)}",
        f"DTSTART:{_compact_datetime(f.start)}",
        f"DTEND:{_compact_datetime(f.end)}",
    ]
    if f.location:
        lines.append(f"LOCATION:{_text_escape(f.location)}")
    if f.description:
        lines.append(f"DESCRIPTION:{_text_escape(f.description)}")
    lines.append("END:VEVENT")
    return "\n".join(lines)


def _encode_payment(f: PaymentFields) -> str:
    if f.payment_kind.strip().lower() == "bitcoin":
        return _with_query(
            f"bitcoin:{f.recipient}", [("amount", f.amount), ("message", f.note)]
        )
    # Alles andere wird als PayPal.me-Link erzeugt (Standard im Formular)
    url = f"{PAYPAL_BASE_URL}{f.recipient}"
    if f.amount:
        url += f"/{f.amount}"
    return url


# ─────────────────────────────────────────────
# 🔍 Parser (Umkehrung der Encoder)
# ─────────────────────────────────────────────
def _extract_text(payload: str) -> TextFields:
    return TextFields(text=payload)


def _extract_url(payload: str) -> UrlFields:
    return UrlFields(url=payload)


def _extract_email(payload: str) -> EmailFields:
    body = _scheme_body(payload, "mailto:")
    if body is None:
        return EmailFields()
    return EmailFields(
        email=unquote(body.split("?", 1)[0]),
        subject=_query_param(body, "subject"),
        body=_query_param(body, "body"),
    )


def _extract_wifi(payload: str) -> WifiFields:
    return WifiFields(
        ssid=_wifi_value(payload, "S"),
        password=_wifi_value(payload, "P"),
        security=_wifi_value(payload, "T") or "WPA",
    )


def _extract_vcard(payload: str) -> VCardFields:
    card = _unfold(payload)

    name = _property(card, "FN")
    if not name:
        parts = _property(card, "N").split(";")
        given = parts[1] if len(parts) > 1 else ""
        name = " ".join(p for p in (given, parts[0]) if p)

    raw_adr = _property(card, "ADR")
    # Eigenes Format: nur die Straßenkomponente ist belegt
    own_format = re.match(r"^;;((?:\\.|[^;\\])*);*$", raw_adr)
    if own_format:
        address = own_format.group(1)
    else:
        address = ", ".join(p for p in _ADR_SPLIT.split(raw_adr) if p)

    return VCardFields(
        name=_text_unescape(name),
        phone=_text_unescape(_property(card, "TEL")),
        email=_text_unescape(_property(card, "EMAIL")),
        organization=_text_unescape(_property(card, "ORG")),
        title=_text_unescape(_property(card, "TITLE")),
        url=_text_unescape(_property(card, "URL")),
        address=_text_unescape(address),
    )


def _extract_location(payload: str) -> LocationFields:
    coords = re.match(r"\s*geo:([^,?;]*),([^,?;]*)", payload, re.I)
    return LocationFields(
        address=_query_param(payload, "q"),
        latitude=coords.group(1).strip() if coords else "",
        longitude=coords.group(2).strip() if coords else "",
    )


def _extract_sms(payload: str) -> SmsFields:
    smsto = _scheme_body(payload, "smsto:")
    if smsto is not None:
        phone, _, message = smsto.partition(":")
        return SmsFields(phone=phone, message=message)

    body = _scheme_body(payload, "sms:")
    if body is None:
        return SmsFields()
    return SmsFields(phone=body.split("?", 1)[0], message=_query_param(body, "body"))


def _extract_call(payload: str) -> CallFields:
    return CallFields(phone=_scheme_body(payload, "tel:") or "")


_ICS_DATETIME = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:T?(\d{2})(\d{2})(\d{2})?)?(Z?)$", re.I)


def _iso_datetime(value: str) -> str:
    """20240501T1000 → 2024-05-01T10:00; unbekannte Formate bleiben roh."""
    match = _ICS_DATETIME.match(value.strip())
    if not match:
        if value:
            logger.debug(f"Unbekanntes Datumsformat übernommen: {value!r}")
        return value
    year, month, day, hour, minute, second, zulu = match.groups()
    result = f"{year}-{month}-{day}"
    if hour:
        result += f"T{hour}:{minute}"
        if second:
            result += f":{second}"
    return result + zulu.upper()


def _extract_event(payload: str) -> EventFields:
    text = _unfold(payload)
    # VTIMEZONE-Blöcke haben eigene DTSTART-Zeilen → nur den VEVENT lesen
    block = re.search(r"BEGIN:VEVENT(.*?)(?:END:VEVENT|\Z)", text, re.I | re.S)
    event = block.group(1) if block else text
    return EventFields(
        title=_text_unescape(_property(event, "SUMMARY")),
        start=_iso_datetime(_property(event, "DTSTART")),
        end=_iso_datetime(_property(event, "DTEND")),
        location=_text_unescape(_property(event, "LOCATION")),
        description=_text_unescape(_property(event, "DESCRIPTION")),
    )


_PAYPAL_PATH = re.compile(r"paypal\.(?:com/paypalme|me)/([^/?#\s]*)(?:/([^/?#\s]*))?", re.I)


def _extract_payment(payload: str) -> PaymentFields:
    paypal = _PAYPAL_PATH.search(payload)
    if paypal:
        # erstes Segment = Empfänger, zweites = Betrag, weitere werden ignoriert
        return PaymentFields(
            payment_kind="paypal",
            recipient=paypal.group(1),
            amount=paypal.group(2) or "",
        )

    body = _scheme_body(payload, "bitcoin:")
    if body is not None:
        return PaymentFields(
            payment_kind="bitcoin",
            recipient=body.split("?", 1)[0],
            amount=_query_param(body, "amount"),
            note=_query_param(body, "message"),
        )

    logger.debug("Zahlungs-Payload ohne PayPal- oder Bitcoin-Marker")
    return PaymentFields()


# ─────────────────────────────────────────────
# 📚 Codec-Tabelle – ein Eintrag pro Intent
# ─────────────────────────────────────────────
class IntentCodec(NamedTuple):
    fields: Type[Any]
    encode: Callable[[Any], str]
    extract: Callable[[str], Any]


_CODECS: Dict[Intent, IntentCodec] = {
    Intent.TEXT: IntentCodec(TextFields, _encode_text, _extract_text),
    Intent.URL: IntentCodec(UrlFields, _encode_url, _extract_url),
    Intent.EMAIL: IntentCodec(EmailFields, _encode_email, _extract_email),
    Intent.WIFI: IntentCodec(WifiFields, _encode_wifi, _extract_wifi),
    Intent.VCARD: IntentCodec(VCardFields, _encode_vcard, _extract_vcard),
    Intent.LOCATION: IntentCodec(LocationFields, _encode_location, _extract_location),
    Intent.SMS: IntentCodec(SmsFields, _encode_sms, _extract_sms),
    Intent.CALL: IntentCodec(CallFields, _encode_call, _extract_call),
    Intent.EVENT: IntentCodec(EventFields, _encode_event, _extract_event),
    Intent.PAYMENT: IntentCodec(PaymentFields, _encode_payment, _extract_payment),
}

_missing = set(Intent) - set(_CODECS)
if _missing:
    raise RuntimeError(f"Kein Codec für Intent(s): {sorted(i.value for i in _missing)}")


def _codec(intent: Union[Intent, str]) -> IntentCodec:
    if not isinstance(intent, Intent):
        intent = Intent(str(intent).strip().lower())
    return _CODECS[intent]


# ─────────────────────────────────────────────
# 🧭 Klassifikation (Reihenfolge ist relevant)
# ─────────────────────────────────────────────
_WEB_PREFIXES = ("http://", "https://", "www.")


def _starts(*prefixes: str) -> Callable[[str], bool]:
    return lambda text: text.startswith(prefixes)


def _contains(marker: str) -> Callable[[str], bool]:
    return lambda text: marker in text


def _is_paypal_link(text: str) -> bool:
    return text.startswith(_WEB_PREFIXES) and PAYPAL_MARKER in text


_CLASSIFY_RULES: Tuple[Tuple[Callable[[str], bool], Intent], ...] = (
    (_is_paypal_link, Intent.PAYMENT),
    (_starts(*_WEB_PREFIXES), Intent.URL),
    (_starts("wifi:"), Intent.WIFI),
    (_starts("mailto:"), Intent.EMAIL),
    (_contains("begin:vcard"), Intent.VCARD),
    (_starts("geo:"), Intent.LOCATION),
    (_starts("sms:", "smsto:"), Intent.SMS),
    (_starts("tel:"), Intent.CALL),
    (_contains("begin:vevent"), Intent.EVENT),
    (_starts("bitcoin:"), Intent.PAYMENT),
)


# ─────────────────────────────────────────────
# 🚀 Öffentliche API
# ─────────────────────────────────────────────
def encode(intent: Union[Intent, str], fields: Optional[Mapping[str, Any]] = None) -> str:
    """
    Erzeugt den kanonischen Payload-String für einen Intent.
    Leere oder fehlende Felder werden weggelassen. Akzeptiert einen
    Field-Bag oder direkt die typisierten Felder des Intents.
    Unbekannte Intents → ValueError.
    """
    codec = _codec(intent)
    if isinstance(fields, codec.fields):
        typed = fields
    elif isinstance(fields, _FieldsMixin):
        raise ValueError(
            f"{type(fields).__name__} gehört zu '{fields.intent.value}', nicht zu '{codec.fields.intent.value}'"
        )
    else:
        typed = codec.fields.from_dict(fields)
    return codec.encode(typed)


def classify(payload: Optional[str]) -> Intent:
    """Ordnet einen beliebigen Payload einem Intent zu; Fallback ist TEXT."""
    text = (payload or "").lstrip().lower()
    for matches, intent in _CLASSIFY_RULES:
        if matches(text):
            return intent
    return Intent.TEXT


def parse_fields(payload: Optional[str], intent: Union[Intent, str]) -> IntentFields:
    """Typisierte Felder aus einem Payload; fehlende Marker → Standardwerte."""
    return _codec(intent).extract(payload or "")


def parse(payload: Optional[str], intent: Union[Intent, str]) -> FieldBag:
    """Field-Bag aus einem Payload (Umkehrung von encode)."""
    return parse_fields(payload, intent).to_dict()


def detect(payload: Optional[str]) -> Tuple[Intent, FieldBag]:
    """classify() und parse() in einem Schritt, z. B. nach einem Scan."""
    intent = classify(payload)
    return intent, parse(payload, intent)


def field_keys(intent: Union[Intent, str]) -> List[str]:
    """Feldnamen, die encode() für einen Intent auswertet."""
    return [_bag_key(f) for f in dataclass_fields(_codec(intent).fields)]
