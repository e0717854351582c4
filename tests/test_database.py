from sqlalchemy import inspect, text

from database import Base, engine


def test_database_connection():
    """Überprüft, ob eine Verbindung zur Datenbank besteht."""
    with engine.connect() as conn:
        result = conn.execute(text("SELECT 1"))
        assert result.scalar() == 1


def test_required_tables_exist():
    """Prüft, ob alle erforderlichen Tabellen existieren."""
    Base.metadata.create_all(engine)

    tables = inspect(engine).get_table_names()
    required = ["qr_history"]
    missing = [t for t in required if t not in tables]
    assert not missing, f"❌ Fehlende Tabellen: {missing}"
