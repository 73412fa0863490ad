"""Engine URL resolution and connectivity checks."""

from sqlalchemy import create_engine

from claimrisk.config.settings import settings
from claimrisk.db.engine import build_engine, ping_db, resolve_db_url


def test_resolve_db_url_precedence(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert resolve_db_url() == settings.db_url

    monkeypatch.setenv("DATABASE_URL", "duckdb:///:memory:")
    assert resolve_db_url() == "duckdb:///:memory:"
    assert resolve_db_url("duckdb:///explicit.duckdb") == "duckdb:///explicit.duckdb"


def test_ping_db_ok(tmp_path):
    engine = build_engine(f"duckdb:///{tmp_path / 'ping.duckdb'}")
    result = ping_db(engine)
    assert result.ok
    assert result.detail == "ok"


def test_ping_db_reports_failure(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'nested' / 'x.db'}")
    result = ping_db(engine)
    assert not result.ok
    assert result.detail.startswith("OperationalError")
