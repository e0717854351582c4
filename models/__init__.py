# =============================================================================
# 📦 models/__init__.py
# =============================================================================

from .qr_history import QRHistoryEntry

__all__ = [
    "QRHistoryEntry",
]
