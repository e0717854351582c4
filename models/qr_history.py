# models/qr_history.py
from __future__ import annotations

import json
import uuid
from typing import Any, Dict

from sqlalchemy import BigInteger, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from database import Base


class QRHistoryEntry(Base):
    """
    Ein Eintrag der Verlaufsliste:
    - Payload (content) und erkannter/gewählter Intent
    - strukturierte Felder und Render-Optionen (JSON)
    - gerendertes Bild als Data-URL
    - Zeitstempel in Millisekunden
    """
    __tablename__ = "qr_history"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False,
        default=lambda: uuid.uuid4().hex,
    )

    intent: Mapped[str] = mapped_column(String(20), nullable=False)   # text, url, wifi, …
    content: Mapped[str] = mapped_column(Text, nullable=False)        # Payload-String
    fields_json: Mapped[str] = mapped_column("fields", Text, default="{}")
    options_json: Mapped[str] = mapped_column("options", Text, default="{}")
    data_url: Mapped[str] = mapped_column(Text, default="")
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # ---------------------------------------------------------------------
    # 🔄 JSON-Helfer
    # ---------------------------------------------------------------------
    def get_fields(self) -> Dict[str, str]:
        return json.loads(self.fields_json or "{}")

    def set_fields(self, data: Dict[str, Any]) -> None:
        self.fields_json = json.dumps(data or {}, ensure_ascii=False)

    def get_options(self) -> Dict[str, Any]:
        return json.loads(self.options_json or "{}")

    def set_options(self, data: Dict[str, Any]) -> None:
        self.options_json = json.dumps(data or {}, ensure_ascii=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.intent,
            "content": self.content,
            "fields": self.get_fields(),
            "options": self.get_options(),
            "dataUrl": self.data_url,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"<QRHistoryEntry id={self.id} intent={self.intent}>"
