"""Shared bar builders for tests."""

from datetime import date, timedelta
from typing import List, Sequence

import pytest

from market_sim.calendar.trading_calendar import TradingCalendar
from market_sim.core.types import Bar, OptionBar
from market_sim.instruments.data_source import DataSource


def trading_dates(start: str, end: str) -> List[date]:
    return list(TradingCalendar(start, end).trading_days)


def make_source(symbol: str, dates: Sequence[date], closes: Sequence[float]) -> DataSource:
    bars = [Bar(time=d, open=c, high=c, low=c, close=c, volume=1000.0) for d, c in zip(dates, closes)]
    return DataSource(symbol, bars)


def make_option_source(
    symbol: str,
    d: date,
    bid: float,
    ask: float,
    strike: float,
    days_to_expiry: int,
    is_put: bool = False,
    underlying: str = "SPX",
) -> DataSource:
    bar = OptionBar(
        time=d, bid=bid, ask=ask, expiration=d + timedelta(days=days_to_expiry),
        strike=strike, is_put=is_put, underlying=underlying,
    )
    return DataSource(symbol, [bar])


@pytest.fixture
def january_2019() -> List[date]:
    """Trading days 2019-01-02 .. 2019-01-31 (21 days, MLK day closed)."""
    return trading_dates("2019-01-02", "2019-01-31")
