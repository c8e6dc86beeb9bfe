"""
Core data types: equity and option bars, fill policy, fills and equity records.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

import pandas as pd

DateLike = Union[date, datetime, str, pd.Timestamp]


def to_date(value: DateLike) -> date:
    """Normalize a date, datetime, ISO string or Timestamp to a plain date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


class FillPolicy(str, Enum):
    CURRENT_BAR_CLOSE = "current_bar_close"
    NEXT_BAR_CLOSE = "next_bar_close"

    @classmethod
    def parse(cls, value: Union["FillPolicy", str]) -> "FillPolicy":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        aliases = {
            "currentbarclose": cls.CURRENT_BAR_CLOSE,
            "close_this_bar": cls.CURRENT_BAR_CLOSE,
            "nextbarclose": cls.NEXT_BAR_CLOSE,
            "close_next_bar": cls.NEXT_BAR_CLOSE,
        }
        if key in aliases:
            return aliases[key]
        return cls(key)


@dataclass(frozen=True)
class Bar:
    """Daily OHLCV bar."""
    time: date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class OptionBar:
    """Daily option quote. The close of an option bar is its mid quote."""
    time: date
    bid: float
    ask: float
    expiration: date
    strike: float
    is_put: bool
    underlying: str
    bid_volume: float = 0.0
    ask_volume: float = 0.0

    @property
    def mid(self) -> float:
        return (self.bid + self.ask) / 2.0

    @property
    def close(self) -> float:
        return self.mid


AnyBar = Union[Bar, OptionBar]


@dataclass(frozen=True)
class OrderRecord:
    """One row of the order log: a fill or a dropped order."""
    date: date
    symbol: str
    requested_delta: int
    quantity: int
    price: float
    commission: float
    status: str  # "filled" | "dropped"
    comment: str = ""  # "open" | "close" | "rebalance" | user text
    target_weight: Optional[float] = None
    reason: str = ""

    @property
    def filled(self) -> bool:
        return self.status == "filled"


@dataclass(frozen=True)
class EquityRecord:
    """Per-day output record for reporting."""
    date: date
    nav: float
    cash: float
    normalized: float
