from io import BytesIO

import pytest
from PIL import Image

from utils.qr_config import QRRenderOptions, get_render_options
from utils.qr_generator import QRRenderError, generate_qr_png, generate_qr_svg


def test_qr_generator_creates_png():
    result = generate_qr_png(payload="https://example.com/test")
    assert isinstance(result, dict)
    assert result["mime"] == "image/png"
    assert result["bytes"].startswith(b"\x89PNG")
    assert result["data_url"].startswith("data:image/png;base64,")

    img = Image.open(BytesIO(result["bytes"]))
    assert img.size == (300, 300)


def test_png_respects_size_and_colors():
    options = get_render_options("dark", size=128)
    result = generate_qr_png("hello", options)

    img = Image.open(BytesIO(result["bytes"])).convert("RGB")
    assert img.size == (128, 128)
    # Ecke liegt im Rand → Hintergrundfarbe des Themes
    assert img.getpixel((0, 0)) == (13, 13, 13)


def test_svg_uses_theme_colors():
    result = generate_qr_svg("hello", get_render_options("pulse"))
    assert result["mime"] == "image/svg+xml"
    assert b"<svg" in result["bytes"]
    assert b"#8b5cf6" in result["bytes"]
    assert result["data_url"].startswith("data:image/svg+xml;base64,")


def test_payload_too_large():
    with pytest.raises(QRRenderError):
        generate_qr_png("a" * 8000)


@pytest.mark.parametrize(
    "overrides",
    [
        {"error_correction": "X"},
        {"foreground": "not-a-color"},
        {"size": 10},
        {"margin": -1},
    ],
)
def test_invalid_options_are_rejected(overrides):
    with pytest.raises(ValueError):
        generate_qr_png("hello", QRRenderOptions(**overrides))


def test_render_options_defaults_and_themes():
    options = get_render_options("classic")
    assert options == QRRenderOptions()
    assert get_render_options("pulse").foreground == "#8b5cf6"
    # unbekanntes Theme → Standard-Design
    assert get_render_options("does-not-exist") == QRRenderOptions()
    assert get_render_options(None, error_correction="h").error_correction == "H"


def test_missing_logo_is_ignored(tmp_path):
    options = QRRenderOptions(logo_path=str(tmp_path / "missing.png"))
    result = generate_qr_png("hello", options)
    assert result["bytes"].startswith(b"\x89PNG")


def test_logo_is_embedded(tmp_path):
    logo_path = tmp_path / "logo.png"
    Image.new("RGBA", (50, 50), (255, 0, 0, 255)).save(logo_path)

    result = generate_qr_png("hello", QRRenderOptions(logo_path=str(logo_path), error_correction="H"))
    img = Image.open(BytesIO(result["bytes"])).convert("RGB")
    assert img.getpixel((150, 150)) == (255, 0, 0)
