"""
utils/qr_engine.py
────────────────────────────────────────────
Zentrale QR-Engine für PixelPulse QR.
- Erzeugen: Felder → Payload → Bild (build_qr_code)
- Scannen:  Bild → Payload → Intent → Felder (scan_qr_code)
- Nutzt: utils/qr_payloads, utils/qr_schema, utils/qr_generator, utils/qr_decoder
────────────────────────────────────────────
"""

from typing import Optional, Dict, Any, Mapping, Union
import logging

from utils.qr_config import QRRenderOptions
from utils.qr_decoder import decode_qr_image
from utils.qr_generator import generate_qr_png, generate_qr_svg
from utils.qr_payloads import Intent, classify, encode, parse
from utils.qr_schema import validate_fields

logger = logging.getLogger(__name__)


def build_qr_code(
    intent: Union[Intent, str],
    data: Mapping[str, Any],
    options: Optional[QRRenderOptions] = None,
    image_format: str = "png",
) -> Dict[str, Any]:
    """
    Erstellt einen QR-Code für einen Intent und gibt
    {"intent", "payload", "bytes", "data_url", "mime"} zurück.
    Fehlende Pflichtfelder → ValueError.
    """
    intent = Intent(intent)
    validate_fields(intent, data)

    payload = encode(intent, data)
    render = generate_qr_svg if image_format == "svg" else generate_qr_png
    result = render(payload, options)

    logger.info(f"✅ QR-Code erstellt: type={intent.value}, {len(payload)} Zeichen")
    return {"intent": intent, "payload": payload, **result}


def analyze_payload(payload: str, intent: Optional[Union[Intent, str]] = None) -> Dict[str, Any]:
    """Ordnet einen Payload zu (falls kein Intent vorgegeben) und liest die Felder."""
    resolved = Intent(intent) if intent else classify(payload)
    return {"intent": resolved, "payload": payload, "fields": parse(payload, resolved)}


def scan_qr_code(file_content: bytes) -> Dict[str, Any]:
    """Liest ein QR-Bild und liefert {"intent", "payload", "fields"}; QRDecodeError bei Fehlern."""
    payload = decode_qr_image(file_content)
    result = analyze_payload(payload)
    logger.info(f"🔎 QR-Code erkannt: type={result['intent'].value}")
    return result
