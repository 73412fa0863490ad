"""API dependencies."""

from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy.orm import Session, sessionmaker

from claimrisk.config.settings import settings
from claimrisk.db.engine import build_engine
from claimrisk.db.init_db import ensure_db
from claimrisk.services.business_days import BusinessDayCalculator
from claimrisk.services.holiday_calendar import HolidayCalendar, build_calendar
from claimrisk.services.model_registry import ModelRegistry
from claimrisk.services.scoring import ScoringOrchestrator


def get_db() -> Generator[Session, None, None]:
    engine = build_engine()
    ensure_db(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@lru_cache(maxsize=1)
def get_calendar() -> HolidayCalendar:
    # Overrides are read once per process.
    return build_calendar(settings.holiday_overrides_path)


def get_calculator() -> BusinessDayCalculator:
    return BusinessDayCalculator(get_calendar())


@lru_cache(maxsize=1)
def get_registry() -> ModelRegistry:
    return ModelRegistry()


@lru_cache(maxsize=1)
def get_orchestrator() -> ScoringOrchestrator:
    return ScoringOrchestrator(
        registry=get_registry(),
        calculator=get_calculator(),
        timeout_s=settings.inference_timeout_s,
    )
