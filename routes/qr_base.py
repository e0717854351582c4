# routes/qr_base.py
# =============================================================================
# 🚀 Zentrale QR-Routen (PixelPulse QR)
# - Encode / Classify / Parse (reine Payload-Operationen)
# - Generate: Felder → Payload → Bild → Verlauf
# - Scan: Bild → Payload → Intent → Felder → Verlauf
# - Download eines Verlaufseintrags als PNG oder SVG
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from database import get_db
from utils.qr_config import QRRenderOptions, get_render_options, options_from_dict
from utils.qr_decoder import QRDecodeError
from utils.qr_engine import analyze_payload, build_qr_code, scan_qr_code
from utils.qr_generator import QRRenderError, generate_qr_png, generate_qr_svg
from utils.qr_history import append_history, get_history_entry, new_history_entry
from utils.qr_payloads import Intent, classify, encode
from utils.qr_schema import get_schema

router = APIRouter(prefix="/api/qr", tags=["QR-Codes"])


class RenderOptionsIn(BaseModel):
    theme: Optional[str] = None
    size: Optional[int] = None
    foreground: Optional[str] = None
    background: Optional[str] = None
    margin: Optional[int] = None
    error_correction: Optional[str] = None


class EncodeIn(BaseModel):
    intent: Intent
    fields: Dict[str, Any] = Field(default_factory=dict)


class GenerateIn(EncodeIn):
    options: RenderOptionsIn = Field(default_factory=RenderOptionsIn)


class PayloadIn(BaseModel):
    payload: str


class ParseIn(PayloadIn):
    intent: Optional[Intent] = None


def _resolve_options(data: RenderOptionsIn) -> QRRenderOptions:
    values = data.model_dump()
    theme = values.pop("theme")
    try:
        return get_render_options(theme, **values)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# =============================================================================
# ✅ METADATEN
# =============================================================================
@router.get("/intents")
def list_intents():
    return {"items": [intent.value for intent in Intent]}


@router.get("/schema")
def list_schemas():
    return {intent.value: get_schema(intent) for intent in Intent}


# =============================================================================
# ✅ PAYLOAD-OPERATIONEN
# =============================================================================
@router.post("/encode")
def encode_payload(body: EncodeIn):
    return {"intent": body.intent.value, "payload": encode(body.intent, body.fields)}


@router.post("/classify")
def classify_payload(body: PayloadIn):
    return {"intent": classify(body.payload).value}


@router.post("/parse")
def parse_payload(body: ParseIn):
    result = analyze_payload(body.payload, body.intent)
    return {**result, "intent": result["intent"].value}


# =============================================================================
# ✅ ERZEUGEN
# =============================================================================
@router.post("/generate", status_code=201)
def generate_qr(body: GenerateIn, db: Session = Depends(get_db)):
    options = _resolve_options(body.options)
    try:
        result = build_qr_code(body.intent, body.fields, options)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except QRRenderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    entry = append_history(
        db,
        new_history_entry(
            intent=body.intent.value,
            content=result["payload"],
            fields={k: str(v) for k, v in body.fields.items() if v is not None},
            options=options.to_dict(),
            data_url=result["data_url"],
        ),
    )
    return {**entry.to_dict(), "payload": result["payload"]}


# =============================================================================
# ✅ SCANNEN
# =============================================================================
@router.post("/scan", status_code=201)
async def scan_qr(
    file: UploadFile = File(...),
    theme: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    content = await file.read()
    try:
        result = scan_qr_code(content)
    except QRDecodeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    options = _resolve_options(RenderOptionsIn(theme=theme))
    try:
        rendered = generate_qr_png(result["payload"], options)
    except QRRenderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    entry = append_history(
        db,
        new_history_entry(
            intent=result["intent"].value,
            content=result["payload"],
            fields=result["fields"],
            options=options.to_dict(),
            data_url=rendered["data_url"],
        ),
    )
    return {**entry.to_dict(), "payload": result["payload"]}


# =============================================================================
# ✅ DOWNLOAD
# =============================================================================
@router.get("/download/{entry_id}")
def download_qr(
    entry_id: str,
    format: str = Query("png", pattern="^(png|svg)$"),
    filename: str = Query("qr-code", max_length=100),
    db: Session = Depends(get_db),
):
    entry = get_history_entry(db, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="QR-Code nicht gefunden")

    render = generate_qr_svg if format == "svg" else generate_qr_png
    try:
        result = render(entry.content, options_from_dict(entry.get_options()))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except QRRenderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    safe_name = "".join(c for c in filename if c.isalnum() or c in "-_") or "qr-code"
    return Response(
        content=result["bytes"],
        media_type=str(result["mime"]),
        headers={"Content-Disposition": f'attachment; filename="{safe_name}.{format}"'},
    )
