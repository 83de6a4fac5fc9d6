"""Pytest configuration: every test gets its own SQLite file and fresh settings."""

import pytest

from config import reload_settings
from db_engine import init_db, reset_engine


@pytest.fixture(autouse=True)
def ledger_db(tmp_path, monkeypatch):
    """Point the engine at a temporary database and create the tables."""
    db_path = tmp_path / "ledger.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("QUOTE_RETRY_ATTEMPTS", "1")
    monkeypatch.delenv("RAKUTEN_APP_ID", raising=False)
    reload_settings()
    reset_engine()
    init_db()
    yield db_path
    reset_engine()
