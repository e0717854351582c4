"""
utils/qr_config.py
────────────────────────────────────────────
Render-Optionen für PixelPulse QR.

Die Optionen gehen nur an den Pixel-Codec (utils/qr_generator);
Encoder, Classifier und Parser werten sie nie aus.
────────────────────────────────────────────
"""

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Mapping, Optional

from PIL import ImageColor

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")
MIN_SIZE = 64
MAX_SIZE = 2048


# ─────────────────────────────────────────────
# 🎨 STANDARDDESIGN (Basis)
# ─────────────────────────────────────────────
@dataclass(frozen=True)
class QRRenderOptions:
    size: int = 300
    foreground: str = "#000000"
    background: str = "#ffffff"
    margin: int = 1
    error_correction: str = "M"
    logo_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ─────────────────────────────────────────────
# 🪄 THEMES – Farbvorlagen
# ─────────────────────────────────────────────
QR_THEMES: Dict[str, Dict[str, Any]] = {
    "classic": {
        "foreground": "#000000",
        "background": "#ffffff",
    },
    "pulse": {
        "foreground": "#8b5cf6",
        "background": "#ffffff",
    },
    "dark": {
        "foreground": "#ffffff",
        "background": "#0d0d0d",
        "error_correction": "Q",
    },
}


def normalize_options(options: QRRenderOptions) -> QRRenderOptions:
    """Prüft Farben, Größe, Rand und Fehlerkorrektur; wirft ValueError."""
    level = str(options.error_correction).upper()
    if level not in ERROR_CORRECTION_LEVELS:
        raise ValueError(f"Unbekannte Fehlerkorrektur: {options.error_correction!r}")

    for name in ("foreground", "background"):
        try:
            ImageColor.getrgb(getattr(options, name))
        except ValueError as exc:
            raise ValueError(f"Ungültige Farbe für {name}: {getattr(options, name)!r}") from exc

    size = int(options.size)
    if not MIN_SIZE <= size <= MAX_SIZE:
        raise ValueError(f"Größe muss zwischen {MIN_SIZE} und {MAX_SIZE} liegen")
    margin = int(options.margin)
    if margin < 0:
        raise ValueError("Rand darf nicht negativ sein")

    return replace(options, size=size, margin=margin, error_correction=level)


# ─────────────────────────────────────────────
# 🧠 FUNKTION: Optionen abrufen
# ─────────────────────────────────────────────
def get_render_options(theme: Optional[str] = None, **overrides: Any) -> QRRenderOptions:
    """
    Baut Render-Optionen aus Theme + Overrides.
    Unbekannte Themes fallen auf das Standard-Design zurück,
    None-Werte in den Overrides werden ignoriert.
    """
    theme = theme or os.getenv("QR_DEFAULT_THEME", "classic")
    if theme not in QR_THEMES:
        logger.warning(f"⚠️ Unbekanntes Theme '{theme}' – verwende Standard-Design")
    values: Dict[str, Any] = dict(QR_THEMES.get(theme, {}))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return normalize_options(QRRenderOptions(**values))


def options_from_dict(data: Optional[Mapping[str, Any]]) -> QRRenderOptions:
    """Optionen aus gespeicherten/empfangenen Dictionaries (z. B. Historie)."""
    data = dict(data or {})
    theme = data.pop("theme", None)
    known = {k: v for k, v in data.items() if k in QRRenderOptions.__dataclass_fields__}
    return get_render_options(theme, **known)
