# utils/qr_schema.py
"""
Definiert Pflichtfelder für jeden QR-Intent.
Der Encoder selbst ist total – die Prüfung gilt nur für das Erzeugen
über die Oberfläche/API (leere QR-Codes werden abgelehnt).
"""

from typing import Dict, Any, List, Mapping, Union

from utils.qr_payloads import Intent, field_keys


# ✅ MINIMALE Felder pro Intent
QR_REQUIRED_FIELDS: Dict[Intent, List[str]] = {
    Intent.TEXT: ["text"],
    Intent.URL: ["url"],
    Intent.EMAIL: ["email"],
    Intent.WIFI: ["ssid"],
    Intent.VCARD: ["name"],
    Intent.LOCATION: ["address"],
    Intent.SMS: ["phone"],
    Intent.CALL: ["phone"],
    Intent.EVENT: ["title", "start"],
    Intent.PAYMENT: ["recipient"],
}


def get_schema(intent: Union[Intent, str]) -> Dict[str, Any]:
    """Pflicht- und optionale Felder eines Intents (für Formulare)."""
    intent = Intent(intent)
    required = QR_REQUIRED_FIELDS[intent]
    return {
        "required": list(required),
        "optional": [key for key in field_keys(intent) if key not in required],
    }


def validate_fields(intent: Union[Intent, str], data: Mapping[str, Any]) -> None:
    intent = Intent(intent)
    for req in QR_REQUIRED_FIELDS[intent]:
        value = data.get(req)
        if value is None or not str(value).strip():
            raise ValueError(f"'{req}' ist erforderlich für QR-Typ '{intent.value}'")
