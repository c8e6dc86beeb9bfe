"""
Holiday rules for US equity exchanges: fixed-date, floating (nth weekday) and Easter-based.
Fixed-date holidays on a Saturday are observed the Friday before, on a Sunday the Monday after.
"""

from __future__ import annotations
import calendar as _cal
from dataclasses import dataclass
from datetime import date, timedelta
from typing import FrozenSet, Iterable, List, Optional, Set

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)


@dataclass(frozen=True)
class HolidayRule:
    """Base rule. Subclasses return the observed date for a year, or None."""
    name: str
    first_year: Optional[int] = None
    last_year: Optional[int] = None

    def applies_to(self, year: int) -> bool:
        if self.first_year is not None and year < self.first_year:
            return False
        if self.last_year is not None and year > self.last_year:
            return False
        return True

    def observed(self, year: int) -> Optional[date]:
        raise NotImplementedError


@dataclass(frozen=True)
class FixedHoliday(HolidayRule):
    month: int = 1
    day: int = 1

    def observed(self, year: int) -> Optional[date]:
        if not self.applies_to(year):
            return None
        return observe(date(year, self.month, self.day))


@dataclass(frozen=True)
class FloatingHoliday(HolidayRule):
    """nth weekday of a month; nth = -1 is the last one."""
    month: int = 1
    weekday: int = MONDAY
    nth: int = 1

    def observed(self, year: int) -> Optional[date]:
        if not self.applies_to(year):
            return None
        return nth_weekday(year, self.month, self.weekday, self.nth)


@dataclass(frozen=True)
class EasterHoliday(HolidayRule):
    """Offset in days from Easter Sunday (Good Friday = -2)."""
    offset_days: int = -2

    def observed(self, year: int) -> Optional[date]:
        if not self.applies_to(year):
            return None
        return easter_sunday(year) + timedelta(days=self.offset_days)


def observe(d: date) -> date:
    """Shift a weekend holiday to its observed weekday."""
    if d.weekday() == SATURDAY:
        return d - timedelta(days=1)
    if d.weekday() == SUNDAY:
        return d + timedelta(days=1)
    return d


def nth_weekday(year: int, month: int, weekday: int, nth: int) -> date:
    if nth > 0:
        first = date(year, month, 1)
        offset = (weekday - first.weekday()) % 7
        return first + timedelta(days=offset + 7 * (nth - 1))
    last = date(year, month, _cal.monthrange(year, month)[1])
    offset = (last.weekday() - weekday) % 7
    return last - timedelta(days=offset + 7 * (-nth - 1))


def easter_sunday(year: int) -> date:
    """Gregorian Easter (anonymous algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


US_EQUITY_HOLIDAYS: List[HolidayRule] = [
    FixedHoliday("New Year's Day", month=1, day=1),
    FloatingHoliday("Martin Luther King Jr. Day", first_year=1998, month=1, weekday=MONDAY, nth=3),
    FloatingHoliday("Washington's Birthday", month=2, weekday=MONDAY, nth=3),
    EasterHoliday("Good Friday", offset_days=-2),
    FloatingHoliday("Memorial Day", month=5, weekday=MONDAY, nth=-1),
    FixedHoliday("Juneteenth", first_year=2022, month=6, day=19),
    FixedHoliday("Independence Day", month=7, day=4),
    FloatingHoliday("Labor Day", month=9, weekday=MONDAY, nth=1),
    FloatingHoliday("Thanksgiving Day", month=11, weekday=THURSDAY, nth=4),
    FixedHoliday("Christmas Day", month=12, day=25),
]

# Unscheduled full-day closures.
US_EQUITY_SPECIAL_CLOSURES: FrozenSet[date] = frozenset({
    date(2001, 9, 11), date(2001, 9, 12), date(2001, 9, 13), date(2001, 9, 14),
    date(2004, 6, 11),
    date(2007, 1, 2),
    date(2012, 10, 29), date(2012, 10, 30),
    date(2018, 12, 5),
    date(2025, 1, 9),
})


def holiday_dates(years: Iterable[int], rules: Iterable[HolidayRule]) -> Set[date]:
    """All observed holiday dates produced by `rules` for `years`."""
    rules = list(rules)
    out: Set[date] = set()
    for year in years:
        for rule in rules:
            d = rule.observed(year)
            if d is not None:
                out.add(d)
    return out
