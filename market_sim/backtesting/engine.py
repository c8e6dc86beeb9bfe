"""
Simulation engine: trading-calendar driven, one atomic settlement per day.

UNINITIALIZED -> WARMING_UP -> RUNNING -> COMPLETED. Warm-up days only advance
instrument cursors. Each running day: advance cursors, settle orders due from
earlier days, ask the decision strategy for target weights (skipped when a
required instrument has no bar), settle, mark NAV, emit one equity record.
"""

from __future__ import annotations
import copy
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from market_sim.analytics.black_scholes import GreeksResult, ImpliedVolResult
from market_sim.analytics.metrics import PerformanceMetrics, compute_metrics, monthly_returns
from market_sim.calendar.holidays import HolidayRule
from market_sim.calendar.trading_calendar import TradingCalendar
from market_sim.core.errors import (
    ConfigError,
    DataUnavailableError,
    InsufficientDataError,
    OutOfBoundsError,
    SimulatorError,
)
from market_sim.core.types import Bar, DateLike, EquityRecord, FillPolicy, OrderRecord, to_date
from market_sim.execution.base import ExecutionModel, PendingOrder
from market_sim.execution.simulated import SimulatedExecution
from market_sim.instruments.data_source import DataSource
from market_sim.instruments.instrument import Instrument, InstrumentView
from market_sim.portfolio.ledger import Ledger, LedgerSnapshot
from market_sim.strategies.base import DecisionStrategy, InstrumentRef, MarketSnapshot, TargetAllocation

logger = logging.getLogger("market_sim.backtest")

DecisionCallable = Callable[[date, MarketSnapshot, LedgerSnapshot], Iterable[TargetAllocation]]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    WARMING_UP = "warming_up"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class OptionAnalytics:
    """Implied volatility and Greeks of one option instrument on one date."""
    symbol: str
    date: date
    implied_volatility: ImpliedVolResult
    greeks: GreeksResult


@dataclass
class DayResult:
    """Everything that happened on one simulated date."""
    date: date
    state: EngineState
    nav: float
    cash: float
    decided: bool = False
    missing: Tuple[str, ...] = ()
    orders: List[OrderRecord] = field(default_factory=list)
    option_analytics: Dict[str, OptionAnalytics] = field(default_factory=dict)


@dataclass
class SimulationResult:
    """Simulation output: equity curve, order log, per-day results and metrics."""
    initial_capital: float
    equity_scale: float = 10.0
    equity: List[EquityRecord] = field(default_factory=list)
    orders: List[OrderRecord] = field(default_factory=list)
    days: List[DayResult] = field(default_factory=list)
    metrics: Optional[PerformanceMetrics] = None

    @property
    def nav(self) -> List[float]:
        return [r.nav for r in self.equity]

    @property
    def fills(self) -> List[OrderRecord]:
        return [o for o in self.orders if o.filled]

    def to_frame(self) -> pd.DataFrame:
        """Equity curve indexed by date: nav, cash, normalized."""
        frame = pd.DataFrame([asdict(r) for r in self.equity], columns=["date", "nav", "cash", "normalized"])
        return frame.set_index("date")

    def orders_frame(self) -> pd.DataFrame:
        columns = [f.name for f in fields(OrderRecord)]
        return pd.DataFrame([asdict(o) for o in self.orders], columns=columns)

    def monthly_returns(self) -> pd.DataFrame:
        return monthly_returns([r.date for r in self.equity], self.nav, self.initial_capital)

    def as_data_source(self, symbol: str, name: Optional[str] = None) -> DataSource:
        """The normalized equity curve as bars, usable as input to another simulation."""
        bars = [
            Bar(time=r.date, open=r.normalized, high=r.normalized, low=r.normalized, close=r.normalized, volume=0.0)
            for r in self.equity
        ]
        return DataSource(symbol, bars, name=name)

    def benchmark(self, data_source: DataSource) -> pd.Series:
        """
        Buy-and-hold of `data_source` over the equity dates, scaled like the
        normalized equity curve. Dates before its first bar are NaN.
        """
        closes = []
        for r in self.equity:
            i = data_source.index_at_or_before(r.date)
            closes.append(float("nan") if i is None else float(data_source.bars[i].close))
        series = pd.Series(closes, index=[r.date for r in self.equity], name=data_source.symbol, dtype=float)
        valid = series.dropna()
        if valid.empty or valid.iloc[0] <= 0:
            return series
        return self.equity_scale * series / valid.iloc[0]


class SimulationEngine:
    """
    Replays attached data sources over a trading calendar. Single-threaded;
    ledger writes happen only inside step().
    """

    def __init__(
        self,
        strategy: Optional[Union[DecisionStrategy, DecisionCallable]],
        start_date: DateLike,
        end_date: DateLike,
        initial_capital: float = 100000.0,
        commission_per_share: float = 0.0,
        fill_policy: Union[FillPolicy, str] = FillPolicy.CURRENT_BAR_CLOSE,
        warmup_start_date: Optional[DateLike] = None,
        holidays: Optional[Iterable[HolidayRule]] = None,
        equity_scale: float = 10.0,
        on_record: Optional[Callable[[EquityRecord], None]] = None,
        risk_free_rate: float = 0.0,
        dividend_yield: float = 0.0,
        compute_option_analytics: bool = False,
        execution: Optional[ExecutionModel] = None,
        max_workers: int = 1,
    ):
        if not initial_capital > 0 or not math.isfinite(initial_capital):
            raise ConfigError(f"initial capital must be positive, got {initial_capital}")
        if commission_per_share < 0:
            raise ConfigError(f"commission per share must be >= 0, got {commission_per_share}")
        try:
            self.fill_policy = FillPolicy.parse(fill_policy)
        except ValueError as e:
            raise ConfigError(f"unknown fill policy {fill_policy!r}") from e

        self.start_date = to_date(start_date)
        self.end_date = to_date(end_date)
        first = to_date(warmup_start_date) if warmup_start_date is not None else self.start_date
        if first > self.start_date:
            raise ConfigError(f"warm-up start {first} is after start date {self.start_date}")
        # Raises InvalidRangeError when end < start.
        TradingCalendar(self.start_date, self.end_date, holidays)
        self.calendar = TradingCalendar(first, self.end_date, holidays)

        self.strategy = strategy
        self.initial_capital = float(initial_capital)
        self.equity_scale = equity_scale
        self.on_record = on_record
        self.risk_free_rate = risk_free_rate
        self.dividend_yield = dividend_yield
        self.compute_option_analytics = compute_option_analytics
        self.max_workers = max_workers
        self.execution = execution or SimulatedExecution(commission_per_share=commission_per_share)
        self.ledger = Ledger(initial_capital)

        self.state = EngineState.UNINITIALIZED
        self.current_date: Optional[date] = None
        self._instruments: Dict[str, Instrument] = {}
        self._views: Dict[str, InstrumentView] = {}
        self._required: frozenset = frozenset()
        self._pending: List[PendingOrder] = []
        self._sequence = 0
        self._cursor = 0
        self._result = SimulationResult(initial_capital=self.initial_capital, equity_scale=self.equity_scale)

    # ---- setup ----------------------------------------------------------

    def add_data_source(self, data_source: DataSource, required: bool = True) -> Instrument:
        """Attach a data source. Only allowed before the first step."""
        if self.state != EngineState.UNINITIALIZED:
            raise SimulatorError("data sources can only be added before the simulation starts")
        if data_source.symbol in self._instruments:
            raise ConfigError(f"duplicate symbol {data_source.symbol}")
        instrument = Instrument(data_source, self, required=required)
        self._instruments[data_source.symbol] = instrument
        self._views[data_source.symbol] = InstrumentView(instrument)
        return instrument

    @property
    def instruments(self) -> Tuple[Instrument, ...]:
        return tuple(self._instruments.values())

    def find_instrument(self, symbol: str) -> Optional[Instrument]:
        return self._instruments.get(symbol.upper())

    def _initialize(self) -> None:
        required = {s for s, i in self._instruments.items() if i.required}
        wanted = getattr(self.strategy, "required_symbols", None)
        if callable(wanted):
            for symbol in wanted():
                symbol = symbol.upper()
                if symbol not in self._instruments:
                    raise ConfigError(f"strategy requires {symbol}, which is not attached")
                required.add(symbol)
        self._required = frozenset(required)
        logger.info(
            "Simulation %s..%s: %d trading days, %d instruments (%d required), fill=%s",
            self.start_date, self.end_date, len(self.calendar), len(self._instruments),
            len(self._required), self.fill_policy.value,
        )

    # ---- orders ---------------------------------------------------------

    def _queue(self, order_kwargs: dict) -> PendingOrder:
        if self.state == EngineState.COMPLETED:
            raise SimulatorError("simulation already completed")
        if self.state == EngineState.WARMING_UP:
            raise SimulatorError("orders cannot be submitted during warm-up")
        self._sequence += 1
        order = PendingOrder(
            submitted=self.current_date or self.calendar.start_date,
            sequence=self._sequence,
            **order_kwargs,
        )
        self._pending.append(order)
        return order

    def _resolve(self, symbol: str) -> str:
        symbol = symbol.upper()
        if symbol not in self._instruments:
            raise SimulatorError(f"unknown instrument {symbol}")
        return symbol

    def submit_target(
        self,
        symbol: str,
        target_weight: float,
        fill_policy: Optional[Union[FillPolicy, str]] = None,
        comment: str = "",
    ) -> PendingOrder:
        """Queue a target weight of NAV; sized at settlement."""
        target_weight = float(target_weight)
        if not math.isfinite(target_weight):
            raise ValueError(f"{symbol}: target weight must be finite, got {target_weight}")
        return self._queue(dict(
            symbol=self._resolve(symbol),
            fill_policy=FillPolicy.parse(fill_policy) if fill_policy else self.fill_policy,
            target_weight=target_weight,
            comment=comment,
        ))

    def submit_order(
        self,
        symbol: str,
        delta_shares: int,
        fill_policy: Optional[Union[FillPolicy, str]] = None,
        comment: str = "",
    ) -> Optional[PendingOrder]:
        """Queue a raw share delta. A zero delta is ignored."""
        if delta_shares == 0:
            return None
        return self._queue(dict(
            symbol=self._resolve(symbol),
            fill_policy=FillPolicy.parse(fill_policy) if fill_policy else self.fill_policy,
            delta_shares=int(delta_shares),
            comment=comment,
        ))

    @property
    def pending_orders(self) -> Tuple[PendingOrder, ...]:
        return tuple(self._pending)

    def _settle_due(self, d: date, prices: Dict[str, Optional[float]]) -> List[OrderRecord]:
        due = [o for o in self._pending if o.is_due(d)]
        if not due:
            return []
        self._pending = [o for o in self._pending if not o.is_due(d)]
        return self.execution.settle(d, due, prices, self.ledger)

    # ---- day loop -------------------------------------------------------

    @property
    def is_completed(self) -> bool:
        return self.state == EngineState.COMPLETED

    def _price_snapshot(self) -> Dict[str, Optional[float]]:
        return {s: (i.close_at(0) if i.is_available else None) for s, i in self._instruments.items()}

    def _market_snapshot(self, d: date) -> MarketSnapshot:
        return MarketSnapshot(
            date=d,
            next_date=self.calendar.next_trading_day(d),
            instruments=MappingProxyType(dict(self._views)),
        )

    def _symbol_of(self, ref: InstrumentRef) -> str:
        if isinstance(ref, str):
            return ref
        return ref.symbol

    def _decide(self, d: date) -> int:
        if self.strategy is None:
            return 0
        decide = self.strategy.decide if isinstance(self.strategy, DecisionStrategy) else self.strategy
        allocations = decide(d, self._market_snapshot(d), self.ledger.snapshot())
        # Validate the whole allocation before queueing any of it.
        targets: List[Tuple[str, float]] = []
        for ref, weight in allocations or ():
            symbol = self._resolve(self._symbol_of(ref))
            weight = float(weight)
            if not math.isfinite(weight):
                raise ValueError(f"{symbol}: target weight must be finite, got {weight}")
            targets.append((symbol, weight))
        for symbol, weight in targets:
            self.submit_target(symbol, weight)
        return len(targets)

    def _checkpoint(self) -> tuple:
        return (
            self._cursor, self.current_date, self.state, list(self._pending),
            self._sequence, copy.deepcopy(self.ledger),
        )

    def _rollback(self, checkpoint: tuple) -> None:
        self._cursor, self.current_date, self.state, self._pending, self._sequence, self.ledger = checkpoint
        for instrument in self._instruments.values():
            if self.current_date is not None:
                instrument.advance_to(self.current_date)

    def step(self) -> Optional[DayResult]:
        """
        Process the next trading day. Returns None once the calendar is exhausted.
        A day either completes or leaves the engine as it was: if the strategy or
        the record callback raises, the day's orders and fills are rolled back.
        """
        if self.state == EngineState.COMPLETED:
            return None
        if self.state == EngineState.UNINITIALIZED:
            self._initialize()
        days = self.calendar.trading_days
        if self._cursor >= len(days):
            self._complete()
            return None

        checkpoint = self._checkpoint()
        try:
            day, record = self._run_day(days[self._cursor])
            if record is not None and self.on_record is not None:
                self.on_record(record)
        except Exception:
            self._rollback(checkpoint)
            raise

        if record is not None:
            self._result.equity.append(record)
            self._result.orders.extend(day.orders)
        self._result.days.append(day)
        if self._cursor >= len(days):
            self._complete()
        return day

    def _run_day(self, d: date) -> Tuple[DayResult, Optional[EquityRecord]]:
        self._cursor += 1
        self.current_date = d
        missing = tuple(sorted(s for s, i in self._instruments.items() if not i.advance_to(d)))

        if d < self.start_date:
            self.state = EngineState.WARMING_UP
            day = DayResult(date=d, state=self.state, nav=self.ledger.nav, cash=self.ledger.cash, missing=missing)
            return day, None

        self.state = EngineState.RUNNING
        prices = self._price_snapshot()
        orders = self._settle_due(d, prices)
        self.ledger.mark_to_market(prices)

        required_missing = [s for s in missing if s in self._required]
        decided = False
        if required_missing:
            logger.info("%s: decisions skipped, no data for %s", d, ", ".join(required_missing))
        else:
            self._decide(d)
            decided = True
        orders.extend(self._settle_due(d, prices))

        nav = self.ledger.mark_to_market(prices)
        record = EquityRecord(
            date=d, nav=nav, cash=self.ledger.cash,
            normalized=self.equity_scale * nav / self.initial_capital,
        )
        day = DayResult(
            date=d, state=self.state, nav=nav, cash=self.ledger.cash,
            decided=decided, missing=missing, orders=orders,
        )
        if self.compute_option_analytics:
            day.option_analytics = self.option_analytics(max_workers=self.max_workers)
        return day, record

    def _complete(self) -> None:
        if self.state == EngineState.COMPLETED:
            return
        if self._pending:
            logger.warning("Dropping %d order(s) pending at end of simulation", len(self._pending))
            as_of = self.current_date or self.end_date
            self._result.orders.extend(self.execution.drop(as_of, self._pending, "simulation ended"))
            self._pending = []
        fills = [o for o in self._result.orders if o.filled]
        self._result.metrics = compute_metrics(
            [self.initial_capital] + [r.nav for r in self._result.equity],
            total_fills=len(fills),
            total_commission=sum(o.commission for o in fills),
        )
        self.state = EngineState.COMPLETED
        logger.info("Simulation completed: final NAV %.2f", self.ledger.nav)

    def run(self) -> SimulationResult:
        """Step until the calendar is exhausted."""
        while self.step() is not None:
            pass
        return self.result()

    def result(self) -> SimulationResult:
        return self._result

    # ---- option analytics ----------------------------------------------

    def _evaluate_option(self, instrument: Instrument, r: float, q: float) -> Optional[OptionAnalytics]:
        try:
            iv = instrument.implied_volatility(r, q)
            greeks = instrument.greeks(iv.volatility, r, q)
        except (OutOfBoundsError, DataUnavailableError, InsufficientDataError) as e:
            logger.info("%s %s: option analytics omitted (%s)", self.current_date, instrument.symbol, e)
            return None
        return OptionAnalytics(symbol=instrument.symbol, date=self.current_date, implied_volatility=iv, greeks=greeks)

    def option_analytics(
        self,
        risk_free_rate: Optional[float] = None,
        dividend_yield: Optional[float] = None,
        max_workers: int = 1,
    ) -> Dict[str, OptionAnalytics]:
        """
        IV and Greeks for every option instrument with a bar today. Instruments whose
        quote is out of bounds (or whose underlying has no bar) are left out.
        """
        r = self.risk_free_rate if risk_free_rate is None else risk_free_rate
        q = self.dividend_yield if dividend_yield is None else dividend_yield
        options: Sequence[Instrument] = [
            i for _, i in sorted(self._instruments.items()) if i.is_option and i.is_available
        ]
        if max_workers > 1 and len(options) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(lambda i: self._evaluate_option(i, r, q), options))
        else:
            results = [self._evaluate_option(i, r, q) for i in options]
        return {a.symbol: a for a in results if a is not None}
