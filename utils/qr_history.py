# utils/qr_history.py
# =============================================================================
# ✅ Verlauf der erzeugten/gescannten QR-Codes
# - neueste Einträge zuerst
# - begrenzte Kapazität (älteste werden verdrängt)
# - Löschen per ID, komplett leeren oder ersetzen
# =============================================================================

import os
import time
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.qr_history import QRHistoryEntry
from utils.qr_config import options_from_dict

logger = logging.getLogger("qr_history")
logger.setLevel(logging.INFO)

DEFAULT_HISTORY_LIMIT = 20


def history_limit() -> int:
    return max(1, int(os.getenv("QR_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT)))


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_history_entry(
    intent: str,
    content: str,
    fields: Optional[Dict[str, Any]] = None,
    options: Optional[Dict[str, Any]] = None,
    data_url: str = "",
    entry_id: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> QRHistoryEntry:
    entry = QRHistoryEntry(
        intent=str(intent),
        content=content,
        data_url=data_url,
        timestamp=timestamp or _now_ms(),
    )
    if entry_id:
        entry.id = entry_id
    entry.set_fields(fields or {})
    entry.set_options(options or {})
    return entry


def _evict_overflow(db: Session) -> int:
    cutoff = (
        db.query(QRHistoryEntry.seq)
        .order_by(QRHistoryEntry.seq.desc())
        .offset(history_limit() - 1)
        .limit(1)
        .scalar()
    )
    if cutoff is None:
        return 0
    return db.query(QRHistoryEntry).filter(QRHistoryEntry.seq < cutoff).delete()


# =============================================================================
# ✅ APPEND
# =============================================================================
def append_history(db: Session, entry: QRHistoryEntry) -> QRHistoryEntry:
    db.add(entry)
    db.flush()
    removed = _evict_overflow(db)
    db.commit()
    db.refresh(entry)

    logger.info(f"📦 Verlaufseintrag gespeichert (id={entry.id}, type={entry.intent})")
    if removed:
        logger.info(f"🧹 {removed} alte Verlaufseinträge verdrängt")
    return entry


# =============================================================================
# ✅ LESEN
# =============================================================================
def list_history(db: Session) -> List[QRHistoryEntry]:
    return (
        db.query(QRHistoryEntry)
        .order_by(QRHistoryEntry.seq.desc())
        .limit(history_limit())
        .all()
    )


def get_history_entry(db: Session, entry_id: str) -> Optional[QRHistoryEntry]:
    return db.query(QRHistoryEntry).filter(QRHistoryEntry.id == entry_id).first()


# =============================================================================
# ✅ LÖSCHEN / ERSETZEN
# =============================================================================
def remove_history_entry(db: Session, entry_id: str) -> bool:
    removed = (
        db.query(QRHistoryEntry)
        .filter(QRHistoryEntry.id == entry_id)
        .delete()
    )
    db.commit()
    if removed:
        logger.info(f"🗑️ Verlaufseintrag entfernt (id={entry_id})")
    return bool(removed)


def clear_history(db: Session) -> int:
    removed = db.query(QRHistoryEntry).delete()
    db.commit()
    logger.info(f"🗑️ Verlauf geleert ({removed} Einträge)")
    return removed


def entry_from_dict(data: Dict[str, Any]) -> QRHistoryEntry:
    """
    Gegenstück zu QRHistoryEntry.to_dict().
    Render-Optionen werden geprüft und normalisiert (ValueError bei Fehlern).
    """
    content = data.get("content")
    if not isinstance(content, str):
        raise ValueError("Verlaufseintrag ohne gültigen Inhalt")
    options = data.get("options")
    if options:
        options = options_from_dict(options).to_dict()
    return new_history_entry(
        intent=data.get("type", "text"),
        content=content,
        fields=data.get("fields"),
        options=options,
        data_url=data.get("dataUrl") or "",
        entry_id=data.get("id"),
        timestamp=data.get("timestamp"),
    )


def replace_history(db: Session, records: Iterable[Dict[str, Any]]) -> List[QRHistoryEntry]:
    """
    Ersetzt den kompletten Verlauf. 'records' ist neueste-zuerst sortiert
    (Format von to_dict()); Überzählige werden verworfen.
    Ungültige Einträge oder doppelte IDs → ValueError, der alte Verlauf bleibt.
    """
    entries = [entry_from_dict(record) for record in list(records)[: history_limit()]]
    ids = [entry.id for entry in entries if entry.id]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Doppelte Verlaufs-IDs: {', '.join(duplicates)}")

    try:
        db.query(QRHistoryEntry).delete()
        for entry in reversed(entries):
            db.add(entry)
            db.flush()
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("⚠️ Verlauf konnte nicht ersetzt werden – Änderungen zurückgerollt")
        raise
    logger.info(f"♻️ Verlauf ersetzt ({len(entries)} Einträge)")
    return list_history(db)
