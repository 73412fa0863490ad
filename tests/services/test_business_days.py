"""Tests for business-day counting."""

from dataclasses import replace
from datetime import date, timedelta

import pytest

from claimrisk.errors import InvalidRange
from claimrisk.models.domain import ClaimRecord
from claimrisk.services.business_days import BusinessDayCalculator
from claimrisk.services.holiday_calendar import HolidayCalendar


@pytest.mark.parametrize(
    "d",
    [date(2024, 3, 6), date(2024, 7, 4), date(2024, 7, 6), date(2021, 12, 31)],
)
def test_same_day_is_zero(calculator, d):
    assert calculator.business_days_elapsed(d, d) == 0


def test_plain_week_equals_calendar_difference(calculator):
    start, end = date(2024, 3, 4), date(2024, 3, 8)
    assert calculator.business_days_elapsed(start, end) == (end - start).days


def test_independence_day_weekend_scenario(calculator):
    # Wed Jul 3 -> Mon Jul 8, 2024: Jul 4 (holiday), Jul 6-7 (weekend) excluded.
    assert calculator.business_days_elapsed(date(2024, 7, 3), date(2024, 7, 8)) == 2


def test_year_boundary_observance(calculator):
    # Dec 31, 2021 is the observed New Year's Day for 2022.
    assert calculator.business_days_elapsed(date(2021, 12, 30), date(2022, 1, 3)) == 1


def test_end_before_start_raises(calculator):
    with pytest.raises(InvalidRange):
        calculator.business_days_elapsed(date(2024, 7, 8), date(2024, 7, 3))


def test_multi_year_range_matches_day_by_day_count(calculator):
    start, end = date(2019, 11, 15), date(2025, 2, 3)
    expected = 0
    d = start + timedelta(days=1)
    while d <= end:
        if calculator.is_business_day(d):
            expected += 1
        d += timedelta(days=1)
    assert calculator.business_days_elapsed(start, end) == expected


def test_holidays_resolved_once_per_year():
    class CountingCalendar(HolidayCalendar):
        calls = 0

        def _compute(self, year):
            CountingCalendar.calls += 1
            return super()._compute(year)

    calc = BusinessDayCalculator(CountingCalendar())
    calc.business_days_elapsed(date(2020, 1, 1), date(2022, 12, 31))
    assert CountingCalendar.calls == 3
    calc.business_days_elapsed(date(2020, 6, 1), date(2022, 6, 1))
    assert CountingCalendar.calls == 3


def test_synthetic_calendar_injection():
    calc = BusinessDayCalculator(HolidayCalendar(rules=(), overrides=[date(2024, 3, 6)]))
    assert calc.business_days_elapsed(date(2024, 3, 4), date(2024, 3, 8)) == 3
    # Without rules, July 4 is an ordinary Thursday.
    assert calc.business_days_elapsed(date(2024, 7, 3), date(2024, 7, 8)) == 3


def test_add_business_days_is_inverse_of_elapsed(calculator):
    assert calculator.add_business_days(date(2024, 7, 3), 2) == date(2024, 7, 8)
    assert calculator.add_business_days(date(2024, 7, 6), 1) == date(2024, 7, 8)
    assert calculator.add_business_days(date(2024, 7, 8), -2) == date(2024, 7, 3)
    target = calculator.add_business_days(date(2023, 12, 20), 30)
    assert calculator.business_days_elapsed(date(2023, 12, 20), target) == 30


def test_ar_days_prefers_payment_date(calculator):
    claim = ClaimRecord(
        claim_id="C1",
        service_date=date(2024, 7, 3),
        submission_date=date(2024, 7, 3),
        payer_id="BCBS",
        procedure_codes=("99213",),
        diagnosis_codes=("I10",),
        billed_amount=120.0,
        place_of_service="11",
        payment_date=date(2024, 7, 8),
    )
    assert calculator.ar_days(claim, as_of=date(2024, 12, 31)) == 2

    unpaid = replace(claim, payment_date=None)
    assert calculator.ar_days(unpaid, as_of=date(2024, 7, 5)) == 1
    with pytest.raises(ValueError):
        calculator.ar_days(unpaid)
