"""
DataSource: one symbol's immutable, date-indexed bar history plus static metadata.
"""

from __future__ import annotations
import bisect
from datetime import date
from typing import Dict, Iterable, Optional, Sequence, Tuple

from market_sim.core.types import AnyBar, Bar, DateLike, OptionBar, to_date


class DataSource:
    """
    Owns a bar sequence. All bars share one shape (equity or option) and their
    dates are strictly increasing.
    """

    def __init__(
        self,
        symbol: str,
        bars: Iterable[AnyBar],
        name: Optional[str] = None,
        underlying: Optional[str] = None,
    ):
        self.symbol = symbol.upper()
        self.name = name or self.symbol
        self._bars: Tuple[AnyBar, ...] = tuple(bars)
        self._validate()
        if underlying is None and self.is_option and self._bars:
            underlying = self._bars[0].underlying
        self.underlying = underlying.upper() if underlying else None
        self._dates: Tuple[date, ...] = tuple(b.time for b in self._bars)
        self._index: Dict[date, int] = {d: i for i, d in enumerate(self._dates)}

    def _validate(self) -> None:
        if not self._bars:
            return
        shape = type(self._bars[0])
        if shape not in (Bar, OptionBar):
            raise ValueError(f"{self.symbol}: unsupported bar type {shape.__name__}")
        prev: Optional[date] = None
        for bar in self._bars:
            if type(bar) is not shape:
                raise ValueError(f"{self.symbol}: mixed equity and option bars")
            if prev is not None and bar.time <= prev:
                raise ValueError(f"{self.symbol}: bar dates not strictly increasing at {bar.time}")
            prev = bar.time

    @property
    def bars(self) -> Tuple[AnyBar, ...]:
        return self._bars

    @property
    def is_option(self) -> bool:
        return bool(self._bars) and isinstance(self._bars[0], OptionBar)

    @property
    def first_date(self) -> Optional[date]:
        return self._bars[0].time if self._bars else None

    @property
    def last_date(self) -> Optional[date]:
        return self._bars[-1].time if self._bars else None

    def index_of(self, d: DateLike) -> Optional[int]:
        """Position of the bar dated exactly `d`, or None."""
        return self._index.get(to_date(d))

    def index_at_or_before(self, d: DateLike) -> Optional[int]:
        """Position of the latest bar dated on or before `d`, or None."""
        i = bisect.bisect_right(self._dates, to_date(d)) - 1
        return i if i >= 0 else None

    def __len__(self) -> int:
        return len(self._bars)

    def __repr__(self) -> str:
        return f"DataSource({self.symbol!r}, bars={len(self._bars)})"


def data_source_from_closes(symbol: str, dates: Sequence[DateLike], closes: Sequence[float]) -> DataSource:
    """Flat OHLC bars from a close series. Handy for tests and derived series."""
    bars = [
        Bar(time=to_date(d), open=c, high=c, low=c, close=c, volume=0.0)
        for d, c in zip(dates, closes)
    ]
    return DataSource(symbol, bars)
