"""Trading calendar and holiday rules."""

from market_sim.calendar.holidays import (
    HolidayRule,
    FixedHoliday,
    FloatingHoliday,
    EasterHoliday,
    US_EQUITY_HOLIDAYS,
    US_EQUITY_SPECIAL_CLOSURES,
)
from market_sim.calendar.trading_calendar import TradingCalendar, trading_days

__all__ = [
    "HolidayRule",
    "FixedHoliday",
    "FloatingHoliday",
    "EasterHoliday",
    "US_EQUITY_HOLIDAYS",
    "US_EQUITY_SPECIAL_CLOSURES",
    "TradingCalendar",
    "trading_days",
]
