"""Holiday calendar and business-day API routes."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from claimrisk.api.deps import get_calculator, get_calendar
from claimrisk.api.schemas import (
    BusinessDaysRequest,
    BusinessDaysResponse,
    HolidayOut,
    HolidaysResponse,
)
from claimrisk.services.business_days import BusinessDayCalculator
from claimrisk.services.holiday_calendar import HolidayCalendar

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/holidays/{year}", response_model=HolidaysResponse)
def holidays(year: int, calendar: HolidayCalendar = Depends(get_calendar)):
    if not date.min.year <= year <= date.max.year:
        raise HTTPException(status_code=400, detail="year out of range")
    named = calendar.named_holidays(year)
    return HolidaysResponse(
        year=year,
        holidays=[HolidayOut(observed_date=d, name=name) for d, name in named.items()],
    )


@router.post("/business-days", response_model=BusinessDaysResponse)
def business_days(
    payload: BusinessDaysRequest,
    calculator: BusinessDayCalculator = Depends(get_calculator),
):
    count = calculator.business_days_elapsed(payload.start, payload.end)
    return BusinessDaysResponse(start=payload.start, end=payload.end, business_days=count)
