"""
utils/qr_decoder.py
────────────────────────────────────────────
Pixel-Codec, Decode-Hälfte: Bild-Bytes → Payload-String.
Nutzt Pillow zum Öffnen und pyzbar (zbar) zum Lesen.
────────────────────────────────────────────
"""

from __future__ import annotations

import io
import os
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


class QRDecodeError(ValueError):
    """Im Bild wurde kein lesbarer QR-Code gefunden."""


def max_upload_bytes() -> int:
    return int(os.getenv("QR_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES))


def decode_qr_image(file_content: bytes) -> str:
    """
    Liest den ersten QR-Code aus einem Bild (PNG, JPG, …).

    Raises:
        QRDecodeError: Datei zu groß, kein Bild oder kein QR-Code enthalten.
    """
    limit = max_upload_bytes()
    if not file_content:
        raise QRDecodeError("Leere Datei")
    if len(file_content) > limit:
        raise QRDecodeError(f"Datei zu groß (max {limit} Bytes)")

    try:
        image = Image.open(io.BytesIO(file_content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise QRDecodeError("Datei ist kein lesbares Bild") from exc

    # zbar wird erst hier geladen: die App startet auch ohne libzbar
    try:
        from pyzbar.pyzbar import ZBarSymbol, decode as pyzbar_decode
    except ImportError as exc:
        raise QRDecodeError("QR-Decoder nicht verfügbar (libzbar fehlt)") from exc

    decoded_objects = pyzbar_decode(image.convert("L"), symbols=[ZBarSymbol.QRCODE])
    if not decoded_objects:
        raise QRDecodeError("Kein QR-Code im Bild gefunden")

    payload = decoded_objects[0].data.decode("utf-8", errors="replace")
    logger.info(f"🔎 QR-Code gelesen: {image.format or 'unbekannt'} {image.width}x{image.height}, {len(payload)} Zeichen")
    return payload
