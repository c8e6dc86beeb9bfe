"""
Trading calendar: ordered, restartable sequence of exchange trading days in [start, end].
"""

from __future__ import annotations
import bisect
from datetime import date, timedelta
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple

from market_sim.calendar.holidays import (
    HolidayRule,
    US_EQUITY_HOLIDAYS,
    US_EQUITY_SPECIAL_CLOSURES,
    holiday_dates,
)
from market_sim.core.errors import InvalidRangeError
from market_sim.core.types import DateLike, to_date


class TradingCalendar:
    """
    Weekdays in [start_date, end_date] minus the holiday table and special closures.
    Iterating always starts again from the first date.
    """

    def __init__(
        self,
        start_date: DateLike,
        end_date: DateLike,
        holidays: Optional[Iterable[HolidayRule]] = None,
        special_closures: Optional[Iterable[date]] = None,
    ):
        self.start_date = to_date(start_date)
        self.end_date = to_date(end_date)
        if self.end_date < self.start_date:
            raise InvalidRangeError(f"end date {self.end_date} is before start date {self.start_date}")
        self.rules: Tuple[HolidayRule, ...] = tuple(US_EQUITY_HOLIDAYS if holidays is None else holidays)
        self.special_closures: FrozenSet[date] = frozenset(
            US_EQUITY_SPECIAL_CLOSURES if special_closures is None else special_closures
        )
        self._days: Tuple[date, ...] = tuple(self._generate())
        self._day_set: FrozenSet[date] = frozenset(self._days)

    def _closed_dates(self, first_year: int, last_year: int) -> FrozenSet[date]:
        # Observed dates can cross a year boundary (Jan 1 on a Saturday), so look one year either side.
        years = range(first_year - 1, last_year + 2)
        return frozenset(holiday_dates(years, self.rules)) | self.special_closures

    def _generate(self) -> Iterator[date]:
        closed = self._closed_dates(self.start_date.year, self.end_date.year)
        d = self.start_date
        one_day = timedelta(days=1)
        while d <= self.end_date:
            if d.weekday() < 5 and d not in closed:
                yield d
            d += one_day

    @property
    def trading_days(self) -> Tuple[date, ...]:
        return self._days

    def __iter__(self) -> Iterator[date]:
        return iter(self._days)

    def __len__(self) -> int:
        return len(self._days)

    def __contains__(self, d: object) -> bool:
        return isinstance(d, date) and to_date(d) in self._day_set

    def is_trading_day(self, d: DateLike) -> bool:
        """True for weekdays that are not holidays, regardless of the calendar range."""
        d = to_date(d)
        return d.weekday() < 5 and d not in self._closed_dates(d.year, d.year)

    def next_trading_day(self, d: DateLike) -> Optional[date]:
        """First calendar date after `d`, or None past the end."""
        i = bisect.bisect_right(self._days, to_date(d))
        return self._days[i] if i < len(self._days) else None

    def holidays_in_year(self, year: int) -> List[date]:
        """Observed weekday closures falling in `year`, sorted."""
        return sorted(d for d in self._closed_dates(year, year) if d.year == year and d.weekday() < 5)


def trading_days(start_date: DateLike, end_date: DateLike, holidays: Optional[Iterable[HolidayRule]] = None) -> List[date]:
    """Convenience: list of trading days for a range."""
    return list(TradingCalendar(start_date, end_date, holidays))
