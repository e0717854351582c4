import os, sys, tempfile
import pytest, pytest_asyncio, httpx
from httpx import ASGITransport

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# ⚙️ Eigene SQLite-Datei für die Tests – muss VOR dem App-Import gesetzt sein
_TEST_DIR = tempfile.mkdtemp(prefix="pixelpulse-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"

from main import app  # noqa: E402
from database import SessionLocal  # noqa: E402
from utils.qr_history import clear_history  # noqa: E402


@pytest.fixture
def db():
    """Session mit leerem Verlauf."""
    session = SessionLocal()
    clear_history(session)
    try:
        yield session
    finally:
        session.close()


@pytest_asyncio.fixture
async def client():
    """Erstellt einen funktionierenden Testclient (leerer Verlauf)."""
    session = SessionLocal()
    try:
        clear_history(session)
    finally:
        session.close()
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
