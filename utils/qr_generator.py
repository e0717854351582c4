# =============================================================================
# 🧠 QR-Code Generator – PixelPulse QR
# -----------------------------------------------------------------------------
# Rendert einen Payload-String als PNG oder SVG (Pixel-Codec, Render-Hälfte).
# =============================================================================

from __future__ import annotations
from typing import Dict, Optional, Type, Union
from io import BytesIO
import os, base64, logging
import qrcode
import qrcode.image.styledpil
import qrcode.image.styles.moduledrawers as mod
import qrcode.image.styles.colormasks as mask
from qrcode.constants import ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q, ERROR_CORRECT_H
from qrcode.exceptions import DataOverflowError
from qrcode.image.svg import SvgPathImage
from PIL import Image, ImageColor

from utils.qr_config import QRRenderOptions, normalize_options

# ---------------------------------------------------------------------------
# ⚙️ Logging konfigurieren
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)

ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


class QRRenderError(RuntimeError):
    """Payload konnte nicht als QR-Code gerendert werden."""


def _build_matrix(payload: str, options: QRRenderOptions) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECTION[options.error_correction],
        box_size=10,
        border=options.margin,
    )
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise QRRenderError(f"Payload zu groß für einen QR-Code ({len(payload)} Zeichen)") from exc
    return qr


def _data_url(mime: str, data: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


# ---------------------------------------------------------------------------
# 🧩 Hauptfunktion: generate_qr_png
# ---------------------------------------------------------------------------
def generate_qr_png(
    payload: str,
    options: Optional[QRRenderOptions] = None,
) -> Dict[str, Union[str, bytes]]:
    """
    Generiert einen QR-Code als PNG.
    Gibt {'bytes': bytes, 'data_url': str, 'mime': 'image/png'} zurück.
    """
    options = normalize_options(options or QRRenderOptions())

    # === 1️⃣ QR-Code Basis ===
    qr = _build_matrix(payload, options)

    # === 2️⃣ Farbmaske (statisch) ===
    color_mask = mask.SolidFillColorMask(
        front_color=ImageColor.getrgb(options.foreground),
        back_color=ImageColor.getrgb(options.background),
    )

    # === 3️⃣ QR-Code-Bild erzeugen ===
    img = qr.make_image(
        image_factory=qrcode.image.styledpil.StyledPilImage,
        module_drawer=mod.SquareModuleDrawer(),
        color_mask=color_mask,
    ).convert("RGBA")

    # === 4️⃣ Logo einfügen ===
    if options.logo_path:
        if os.path.exists(options.logo_path):
            try:
                logo = Image.open(options.logo_path).convert("RGBA")
                logo_size = int(img.width * 0.2)
                logo = logo.resize((logo_size, logo_size), Image.Resampling.LANCZOS)
                pos = ((img.width - logo_size) // 2, (img.height - logo_size) // 2)
                img.alpha_composite(logo, dest=pos)
            except OSError as e:
                logger.warning(f"⚠️ Logo konnte nicht eingebettet werden: {e}")
        else:
            logger.warning(f"⚠️ Logo nicht gefunden: {options.logo_path}")

    # === 5️⃣ Finale Skalierung ===
    img = img.resize((options.size, options.size), Image.Resampling.LANCZOS).convert("RGB")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    data = buffer.getvalue()

    logger.info(f"✅ QR-Code (PNG) gerendert: {options.size}px, ECL={options.error_correction}")
    return {"bytes": data, "data_url": _data_url("image/png", data), "mime": "image/png"}


# ---------------------------------------------------------------------------
# 🧩 SVG-Variante
# ---------------------------------------------------------------------------
def _svg_factory(options: QRRenderOptions) -> Type[SvgPathImage]:
    class ThemedSvgImage(SvgPathImage):
        background = options.background
        QR_PATH_STYLE = {**SvgPathImage.QR_PATH_STYLE, "fill": options.foreground}

    return ThemedSvgImage


def generate_qr_svg(
    payload: str,
    options: Optional[QRRenderOptions] = None,
) -> Dict[str, Union[str, bytes]]:
    """Wie generate_qr_png, aber als SVG (Logo wird ignoriert)."""
    options = normalize_options(options or QRRenderOptions())
    qr = _build_matrix(payload, options)

    img = qr.make_image(image_factory=_svg_factory(options))
    data = img.to_string(encoding="utf-8")

    logger.info("✅ QR-Code (SVG) gerendert")
    return {"bytes": data, "data_url": _data_url("image/svg+xml", data), "mime": "image/svg+xml"}
