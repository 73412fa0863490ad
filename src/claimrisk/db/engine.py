"""Engine construction and connectivity checks for the model store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from claimrisk.config.settings import settings


@dataclass(frozen=True)
class DBPingResult:
    ok: bool
    detail: str


def resolve_db_url(db_url: Optional[str] = None) -> str:
    """Explicit URL, then DATABASE_URL, then CLAIMRISK_DB_URL / the DuckDB default."""
    return db_url or os.getenv("DATABASE_URL") or settings.db_url


def build_engine(db_url: Optional[str] = None) -> Engine:
    return create_engine(resolve_db_url(db_url), future=True)


def ping_db(engine: Engine) -> DBPingResult:
    """Run `select 1`; failures are reported in the result, not raised."""
    try:
        with engine.connect() as conn:
            conn.execute(text("select 1")).scalar_one()
    except Exception as e:
        return DBPingResult(ok=False, detail=f"{type(e).__name__}: {e}")
    return DBPingResult(ok=True, detail="ok")
