from io import BytesIO

import pytest
from PIL import Image

from utils.qr_decoder import QRDecodeError, decode_qr_image
from utils.qr_engine import build_qr_code, scan_qr_code
from utils.qr_generator import generate_qr_png
from utils.qr_payloads import Intent


def _blank_png() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (200, 200), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def test_empty_file_is_rejected():
    with pytest.raises(QRDecodeError):
        decode_qr_image(b"")


def test_non_image_is_rejected():
    with pytest.raises(QRDecodeError):
        decode_qr_image(b"definitely not an image")


def test_oversized_upload_is_rejected(monkeypatch):
    monkeypatch.setenv("QR_MAX_UPLOAD_BYTES", "10")
    with pytest.raises(QRDecodeError):
        decode_qr_image(_blank_png())


def test_image_without_qr_code():
    pytest.importorskip("pyzbar.pyzbar")
    with pytest.raises(QRDecodeError):
        decode_qr_image(_blank_png())


def test_decode_rendered_payload():
    pytest.importorskip("pyzbar.pyzbar")
    payload = "https://example.com/?a=1&b=2"
    png = generate_qr_png(payload)["bytes"]
    assert decode_qr_image(png) == payload


def test_scan_recovers_intent_and_fields():
    pytest.importorskip("pyzbar.pyzbar")
    result = build_qr_code("wifi", {"ssid": "Cafe", "password": "latte123"})
    scanned = scan_qr_code(result["bytes"])

    assert scanned["intent"] == Intent.WIFI
    assert scanned["payload"] == "WIFI:S:Cafe;T:WPA;P:latte123;;"
    assert scanned["fields"] == {"ssid": "Cafe", "password": "latte123", "security": "WPA"}
