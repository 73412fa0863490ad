"""Business-day arithmetic for claim aging."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

import numpy as np

from claimrisk.errors import InvalidRange
from claimrisk.models.domain import ClaimRecord
from claimrisk.services.holiday_calendar import HolidayCalendar

WEEKMASK = "1111100"


class BusinessDayCalculator:
    """
    Counts elapsed business days between two dates.

    Convention: the start date is day zero and the end date counts, i.e. the
    result is the number of business days d with start < d <= end. The same
    date on both ends is always 0.
    """

    def __init__(self, calendar: HolidayCalendar):
        self.calendar = calendar

    def _busdaycal(self, start: date, end: date) -> np.busdaycalendar:
        holidays = self.calendar.holidays_between(start, end)
        return np.busdaycalendar(
            weekmask=WEEKMASK,
            holidays=np.array(holidays, dtype="datetime64[D]"),
        )

    def business_days_elapsed(self, start: date, end: date) -> int:
        if end < start:
            raise InvalidRange(f"end date {end.isoformat()} is before start date {start.isoformat()}")
        if end == start:
            return 0
        lo = start + timedelta(days=1)
        hi = end + timedelta(days=1)
        cal = self._busdaycal(lo, end)
        count = np.busday_count(
            np.datetime64(lo, "D"),
            np.datetime64(hi, "D"),
            busdaycal=cal,
        )
        return int(count)

    def is_business_day(self, d: date) -> bool:
        return d.weekday() < 5 and not self.calendar.is_holiday(d)

    def add_business_days(self, start: date, days: int) -> date:
        """The date `days` business days after `start` (before, if negative)."""
        if days == 0:
            return start
        # Generous window: five weekdays per week plus at most ~12 holidays per year.
        span = timedelta(days=abs(days) * 2 + 30)
        cal = self._busdaycal(start - span, start + span)
        # Rolling against the direction of travel keeps start exclusive.
        shifted = np.busday_offset(
            np.datetime64(start, "D"),
            days,
            roll="backward" if days > 0 else "forward",
            busdaycal=cal,
        )
        return shifted.astype(object)

    def ar_days(self, claim: ClaimRecord, as_of: Optional[date] = None) -> int:
        """
        AR business days for a claim.

        Uses the payment date when the claim has been paid, otherwise the
        caller-supplied as-of date.
        """
        end = claim.payment_date or as_of
        if end is None:
            raise ValueError("as_of is required for claims without a payment date")
        return self.business_days_elapsed(claim.service_date, end)
