# routes/history.py
# =============================================================================
# 🕘 Verlauf (PixelPulse QR) – neueste zuerst, begrenzt auf QR_HISTORY_LIMIT
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from utils.qr_history import (
    clear_history,
    get_history_entry,
    list_history,
    remove_history_entry,
    replace_history,
)
from utils.qr_payloads import Intent

router = APIRouter(prefix="/api/history", tags=["Verlauf"])


class HistoryItemIn(BaseModel):
    """Ein Eintrag im Format von QRHistoryEntry.to_dict()."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, min_length=1, max_length=32)
    type: Intent = Intent.TEXT
    content: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)
    data_url: str = Field("", alias="dataUrl")
    timestamp: Optional[int] = None


class ReplaceHistoryIn(BaseModel):
    items: List[HistoryItemIn] = Field(default_factory=list)


def _serialize(entries) -> Dict[str, Any]:
    items = [entry.to_dict() for entry in entries]
    return {"items": items, "count": len(items)}


@router.get("")
def get_history(db: Session = Depends(get_db)):
    return _serialize(list_history(db))


@router.put("")
def put_history(body: ReplaceHistoryIn, db: Session = Depends(get_db)):
    records = [item.model_dump(mode="json", by_alias=True) for item in body.items]
    try:
        return _serialize(replace_history(db, records))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except IntegrityError as exc:
        raise HTTPException(status_code=422, detail="Verlauf konnte nicht gespeichert werden") from exc


@router.delete("")
def delete_history(db: Session = Depends(get_db)):
    return {"cleared": clear_history(db)}


@router.get("/{entry_id}")
def get_history_item(entry_id: str, db: Session = Depends(get_db)):
    entry = get_history_entry(db, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Verlaufseintrag nicht gefunden")
    return entry.to_dict()


@router.delete("/{entry_id}")
def delete_history_item(entry_id: str, db: Session = Depends(get_db)):
    if not remove_history_entry(db, entry_id):
        raise HTTPException(status_code=404, detail="Verlaufseintrag nicht gefunden")
    return {"deleted": entry_id}
