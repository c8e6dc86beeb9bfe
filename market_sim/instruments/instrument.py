"""
Instrument: a data source attached to an engine. Tracks the engine's current date,
exposes indexed lookback (offset 0 = bar on the current date) and option analytics.
"""

from __future__ import annotations
import logging
import weakref
from datetime import date
from typing import TYPE_CHECKING, Any, Optional, Tuple, Union

from market_sim.analytics.black_scholes import (
    DAYS_PER_YEAR,
    GreeksResult,
    ImpliedVolResult,
    evaluate_greeks,
    solve_implied_volatility,
)
from market_sim.core.errors import DataUnavailableError, InsufficientDataError
from market_sim.core.types import AnyBar, DateLike, FillPolicy, OptionBar, to_date
from market_sim.instruments.data_source import DataSource

if TYPE_CHECKING:
    from market_sim.backtesting.engine import SimulationEngine
    from market_sim.execution.base import PendingOrder

logger = logging.getLogger("market_sim.instruments")


class Instrument:
    """
    Created by the engine when a data source is attached. Positions live in the
    engine's ledger; the instrument only reads them.
    """

    def __init__(self, data_source: DataSource, engine: "SimulationEngine", required: bool = True):
        self.data_source = data_source
        self.required = required
        self._engine = engine
        self._cursor: Optional[int] = None
        self._available = False
        self._current_date: Optional[date] = None
        self._underlying_ref: Optional["weakref.ReferenceType[Instrument]"] = None

    @property
    def symbol(self) -> str:
        return self.data_source.symbol

    @property
    def name(self) -> str:
        return self.data_source.name

    @property
    def is_option(self) -> bool:
        return self.data_source.is_option

    @property
    def is_available(self) -> bool:
        """True if a bar exists for the engine's current date."""
        return self._available

    @property
    def current_date(self) -> Optional[date]:
        return self._current_date

    def advance_to(self, d: date) -> bool:
        """Move the cursor to `d`. Returns availability for that date."""
        self._current_date = d
        self._cursor = self.data_source.index_at_or_before(d)
        self._available = self.data_source.index_of(d) is not None
        return self._available

    # ---- lookback -------------------------------------------------------

    def bar_at(self, offset: int = 0) -> AnyBar:
        """Bar `offset` steps back from the current date's bar."""
        if offset < 0:
            raise ValueError(f"lookback offset must be >= 0, got {offset}")
        if not self._available or self._cursor is None:
            raise DataUnavailableError(self.symbol, f"{self.symbol}: no bar on {self._current_date}")
        i = self._cursor - offset
        if i < 0:
            raise InsufficientDataError(
                self.symbol, f"{self.symbol}: lookback {offset} exceeds {self._cursor + 1} bars of history"
            )
        return self.data_source.bars[i]

    def close_at(self, offset: int = 0) -> float:
        return float(self.bar_at(offset).close)

    def bid_ask_at(self, offset: int = 0) -> Tuple[float, float]:
        """(bid, ask) for option instruments."""
        if not self.is_option:
            raise TypeError(f"{self.symbol} is not an option instrument")
        bar = self.bar_at(offset)
        return bar.bid, bar.ask

    def has_data_at(self, d: DateLike) -> bool:
        """True only if a bar exists for exactly that date."""
        return self.data_source.index_of(to_date(d)) is not None

    @property
    def last_close(self) -> Optional[float]:
        """Close of the latest bar on or before the current date (marks held positions)."""
        if self._cursor is None:
            return None
        return float(self.data_source.bars[self._cursor].close)

    # ---- positions and orders ------------------------------------------

    @property
    def position(self) -> int:
        return self._engine.ledger.position(self.symbol)

    def submit_trade(
        self,
        delta_shares: int,
        fill_policy: Optional[Union[FillPolicy, str]] = None,
        comment: str = "",
    ) -> Optional["PendingOrder"]:
        """Queue a share delta. Returns None for a zero delta."""
        return self._engine.submit_order(self.symbol, delta_shares=int(delta_shares), fill_policy=fill_policy, comment=comment)

    # ---- options --------------------------------------------------------

    @property
    def underlying(self) -> Optional["Instrument"]:
        if self._underlying_ref is not None:
            inst = self._underlying_ref()
            if inst is not None:
                return inst
        symbol = self.data_source.underlying
        if not symbol:
            return None
        inst = self._engine.find_instrument(symbol)
        if inst is not None:
            self._underlying_ref = weakref.ref(inst)
        return inst

    def _option_bar(self) -> OptionBar:
        if not self.is_option:
            raise TypeError(f"{self.symbol} is not an option instrument")
        return self.bar_at(0)

    @property
    def expiration(self) -> date:
        return self._option_bar().expiration

    @property
    def strike(self) -> float:
        return self._option_bar().strike

    @property
    def is_put(self) -> bool:
        return self._option_bar().is_put

    def time_to_expiry(self) -> float:
        """Years (365 calendar days) from the current date to expiration."""
        bar = self._option_bar()
        return (bar.expiration - self._current_date).days / DAYS_PER_YEAR

    def _spot(self) -> float:
        underlying = self.underlying
        if underlying is None:
            raise DataUnavailableError(self.symbol, f"{self.symbol}: underlying {self.data_source.underlying} not attached")
        return underlying.close_at(0)

    def implied_volatility(self, risk_free_rate: float = 0.0, dividend_yield: float = 0.0, **solver_kwargs: Any) -> ImpliedVolResult:
        """Implied volatility of today's mid quote."""
        bar = self._option_bar()
        return solve_implied_volatility(
            self._spot(), bar.strike, self.time_to_expiry(),
            risk_free_rate, dividend_yield, bar.mid, bar.is_put, **solver_kwargs,
        )

    def greeks(self, volatility: float, risk_free_rate: float = 0.0, dividend_yield: float = 0.0) -> GreeksResult:
        bar = self._option_bar()
        return evaluate_greeks(
            self._spot(), bar.strike, self.time_to_expiry(),
            volatility, risk_free_rate, dividend_yield, bar.is_put,
        )

    def __repr__(self) -> str:
        return f"Instrument({self.symbol!r}, position={self.position})"


class InstrumentView:
    """Read-only facade handed to decision strategies."""

    __slots__ = ("_instrument",)

    def __init__(self, instrument: Instrument):
        self._instrument = instrument

    symbol = property(lambda self: self._instrument.symbol)
    name = property(lambda self: self._instrument.name)
    is_option = property(lambda self: self._instrument.is_option)
    is_available = property(lambda self: self._instrument.is_available)
    required = property(lambda self: self._instrument.required)
    position = property(lambda self: self._instrument.position)
    last_close = property(lambda self: self._instrument.last_close)

    def close_at(self, offset: int = 0) -> float:
        return self._instrument.close_at(offset)

    def bid_ask_at(self, offset: int = 0) -> Tuple[float, float]:
        return self._instrument.bid_ask_at(offset)

    def bar_at(self, offset: int = 0) -> AnyBar:
        return self._instrument.bar_at(offset)

    def has_data_at(self, d: DateLike) -> bool:
        return self._instrument.has_data_at(d)

    def time_to_expiry(self) -> float:
        return self._instrument.time_to_expiry()

    def implied_volatility(self, risk_free_rate: float = 0.0, dividend_yield: float = 0.0, **solver_kwargs: Any) -> ImpliedVolResult:
        return self._instrument.implied_volatility(risk_free_rate, dividend_yield, **solver_kwargs)

    def greeks(self, volatility: float, risk_free_rate: float = 0.0, dividend_yield: float = 0.0) -> GreeksResult:
        return self._instrument.greeks(volatility, risk_free_rate, dividend_yield)

    def __repr__(self) -> str:
        return f"InstrumentView({self.symbol!r})"
