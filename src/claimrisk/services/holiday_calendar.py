"""US federal holiday calendar with weekend observance shifting."""

from __future__ import annotations

import calendar
import json
import logging
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)


@dataclass(frozen=True)
class HolidayRule:
    """
    One named holiday.

    kind:
    - "fixed": month/day every year (observance shifting applies)
    - "nth_weekday": the `nth` `weekday` of `month` (nth=-1 means last)
    """

    name: str
    kind: str
    month: int
    day: int = 0
    weekday: int = 0
    nth: int = 0
    first_year: Optional[int] = None

    def actual_date(self, year: int) -> Optional[date]:
        if self.first_year is not None and year < self.first_year:
            return None
        if self.kind == "fixed":
            return date(year, self.month, self.day)
        if self.kind == "nth_weekday":
            return _nth_weekday(year, self.month, self.weekday, self.nth)
        raise ValueError(f"Unknown holiday rule kind: {self.kind}")


def _nth_weekday(year: int, month: int, weekday: int, nth: int) -> date:
    if nth < 0:
        last_day = calendar.monthrange(year, month)[1]
        d = date(year, month, last_day)
        return d - timedelta(days=(d.weekday() - weekday) % 7)
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (nth - 1))


def observed_date(actual: date) -> date:
    """Saturday holidays are observed Friday, Sunday holidays Monday."""
    if actual.weekday() == SATURDAY:
        return actual - timedelta(days=1)
    if actual.weekday() == SUNDAY:
        return actual + timedelta(days=1)
    return actual


FEDERAL_HOLIDAY_RULES: Tuple[HolidayRule, ...] = (
    HolidayRule("New Year's Day", "fixed", month=1, day=1),
    HolidayRule("Martin Luther King Jr. Day", "nth_weekday", month=1, weekday=MONDAY, nth=3, first_year=1986),
    HolidayRule("Washington's Birthday", "nth_weekday", month=2, weekday=MONDAY, nth=3),
    HolidayRule("Memorial Day", "nth_weekday", month=5, weekday=MONDAY, nth=-1),
    HolidayRule("Juneteenth", "fixed", month=6, day=19, first_year=2021),
    HolidayRule("Independence Day", "fixed", month=7, day=4),
    HolidayRule("Labor Day", "nth_weekday", month=9, weekday=MONDAY, nth=1),
    HolidayRule("Columbus Day", "nth_weekday", month=10, weekday=MONDAY, nth=2),
    HolidayRule("Veterans Day", "fixed", month=11, day=11),
    HolidayRule("Thanksgiving Day", "nth_weekday", month=11, weekday=THURSDAY, nth=4),
    HolidayRule("Christmas Day", "fixed", month=12, day=25),
)


class HolidayCalendar:
    """
    Resolves years into observed holiday sets.

    Observed dates belong to the year they fall in, so a Saturday New Year's
    Day shows up as Dec 31 of the previous year.
    """

    def __init__(
        self,
        rules: Iterable[HolidayRule] = FEDERAL_HOLIDAY_RULES,
        overrides: Iterable[date] = (),
    ):
        self.rules: Tuple[HolidayRule, ...] = tuple(rules)
        self.overrides: Tuple[date, ...] = tuple(sorted(set(overrides)))
        self._cache: Dict[int, FrozenSet[date]] = {}
        self._lock = threading.Lock()

    def _observed_for_rule_year(self, year: int) -> Dict[date, str]:
        out: Dict[date, str] = {}
        if not date.min.year <= year <= date.max.year:
            return out
        for rule in self.rules:
            actual = rule.actual_date(year)
            if actual is None:
                continue
            out[observed_date(actual)] = rule.name
        return out

    def _compute(self, year: int) -> FrozenSet[date]:
        days = set()
        # Neighbouring years can shift an observance across the boundary.
        for rule_year in (year - 1, year, year + 1):
            for d in self._observed_for_rule_year(rule_year):
                if d.year == year:
                    days.add(d)
        days.update(d for d in self.overrides if d.year == year)
        return frozenset(days)

    def holidays_for_year(self, year: int) -> FrozenSet[date]:
        cached = self._cache.get(year)
        if cached is not None:
            return cached
        computed = self._compute(year)
        with self._lock:
            return self._cache.setdefault(year, computed)

    def holidays_between(self, start: date, end: date) -> Tuple[date, ...]:
        """All observed holidays in [start, end], sorted."""
        if end < start:
            return ()
        days = set()
        for year in range(start.year, end.year + 1):
            days.update(d for d in self.holidays_for_year(year) if start <= d <= end)
        return tuple(sorted(days))

    def is_holiday(self, d: date) -> bool:
        return d in self.holidays_for_year(d.year)

    def named_holidays(self, year: int) -> Dict[date, str]:
        """Observed holidays for `year` keyed by date, with rule names."""
        named: Dict[date, str] = {}
        for rule_year in (year - 1, year, year + 1):
            for d, name in self._observed_for_rule_year(rule_year).items():
                if d.year == year:
                    named[d] = name
        for d in self.overrides:
            if d.year == year:
                named.setdefault(d, "Override")
        return dict(sorted(named.items()))


def load_holiday_overrides(path: str | Path) -> Tuple[date, ...]:
    """
    Load ad-hoc closure dates.

    Accepts either a JSON list of ISO dates or a text file with one ISO date
    per line (blank lines and '#' comments ignored).
    """
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() == ".json":
        raw = json.loads(text)
        if not isinstance(raw, list):
            raise ValueError(f"{p}: expected a JSON list of ISO dates")
        values = [str(v) for v in raw]
    else:
        values = [
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.strip().startswith("#")
        ]
    dates = tuple(date.fromisoformat(v) for v in values)
    logger.info("Loaded %d holiday overrides from %s", len(dates), p)
    return dates


def build_calendar(overrides_path: str | Path | None = None) -> HolidayCalendar:
    overrides: Tuple[date, ...] = ()
    if overrides_path:
        overrides = load_holiday_overrides(overrides_path)
    return HolidayCalendar(FEDERAL_HOLIDAY_RULES, overrides)
