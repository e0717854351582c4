# =============================================================================
# 🚀 PixelPulse QR – Hauptapplikation (main.py)
# =============================================================================

from __future__ import annotations
import logging
from pathlib import Path

from fastapi import FastAPI
from dotenv import load_dotenv

# -------------------------------------------------------------------------
# 1️⃣ .env laden (muss ganz oben sein!)
# -------------------------------------------------------------------------
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("pixelpulse")

from database import init_db  # noqa: E402
from routes import history, qr_base  # noqa: E402

# -------------------------------------------------------------------------
# 2️⃣ FastAPI App
# -------------------------------------------------------------------------
app = FastAPI(title="PixelPulse QR", version="1.0")
init_db()
logger.info(f"🧩 .env geladen von: {env_path}")

# -------------------------------------------------------------------------
# 3️⃣ Routen laden
# -------------------------------------------------------------------------
app.include_router(qr_base.router)
app.include_router(history.router)


# -------------------------------------------------------------------------
# 4️⃣ Health
# -------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}
