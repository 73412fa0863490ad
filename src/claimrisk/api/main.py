from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from claimrisk.api.deps import get_orchestrator, get_registry
from claimrisk.api.routes_calendar import router as calendar_router
from claimrisk.api.routes_claims import router as claims_router
from claimrisk.api.routes_models import router as models_router
from claimrisk.config.settings import settings
from claimrisk.db.engine import build_engine, ping_db
from claimrisk.db.init_db import ensure_db
from claimrisk.errors import ClaimRiskError, InvalidRange, SchemaMismatch, VersionMismatch
from claimrisk.logging_config import setup_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidRange: 400,
    SchemaMismatch: 422,
    VersionMismatch: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    if settings.default_model_id:
        engine = build_engine()
        ensure_db(engine)
        with sessionmaker(bind=engine)() as session:
            get_registry().load_from_db(session, settings.default_model_id)
    yield
    get_orchestrator().close()
    get_orchestrator.cache_clear()


app = FastAPI(title="claimrisk", lifespan=lifespan)

app.include_router(claims_router, prefix="/api")
app.include_router(models_router, prefix="/api")
app.include_router(calendar_router, prefix="/api")


@app.exception_handler(ClaimRiskError)
async def claimrisk_error_handler(request: Request, exc: ClaimRiskError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    logger.error("%s on %s: %s", exc.code, request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": {"code": exc.code, "message": str(exc)}})


@app.get("/api/health")
def health() -> dict:
    engine = build_engine()
    db = ping_db(engine)
    version = get_registry().current_version()
    return {
        "status": "ok" if db.ok else "degraded",
        "db": {"ok": db.ok, "detail": db.detail},
        "model": {"published": version is not None, "model_id": version[1] if version else None},
    }


@app.get("/health")
def health_root() -> dict:
    return health()
