from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import Engine

from claimrisk.db.schema import Base


def _ensure_parent_dir(engine: Engine) -> None:
    database = engine.url.database
    if engine.url.get_backend_name() in {"duckdb", "sqlite"} and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def init_db(engine: Engine) -> None:
    """
    Recreate the schema from scratch (drops existing tables).

    DuckDB + SQLAlchemy can misbehave with transactional DDL, so this runs on a
    plain connection and commits through the DBAPI connection when available.
    """
    _ensure_parent_dir(engine)
    conn = engine.connect()
    try:
        Base.metadata.drop_all(bind=conn)
        Base.metadata.create_all(bind=conn)
        raw = conn.connection
        if hasattr(raw, "commit"):
            raw.commit()
    finally:
        conn.close()


def ensure_db(engine: Engine) -> None:
    """Create any missing tables without touching existing data."""
    _ensure_parent_dir(engine)
    Base.metadata.create_all(engine)
