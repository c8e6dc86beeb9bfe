"""
Portfolio ledger: cash, per-symbol entries, NAV. Average-cost accounting for realized P&L.
NAV = cash + sum(position * last mark) at every settlement boundary.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional

logger = logging.getLogger("market_sim.portfolio")


@dataclass
class LedgerEntry:
    """Position state for one symbol. Kept (zeroed) when flat."""
    symbol: str
    quantity: int = 0
    cost_basis: float = 0.0  # total cost of the open quantity
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    last_price: Optional[float] = None
    commission: float = 0.0

    @property
    def average_cost(self) -> float:
        return self.cost_basis / self.quantity if self.quantity else 0.0

    @property
    def market_value(self) -> float:
        if self.quantity == 0 or self.last_price is None:
            return 0.0
        return self.quantity * self.last_price


@dataclass(frozen=True)
class LedgerSnapshot:
    """Read-only ledger state handed to decision strategies."""
    cash: float
    nav: float
    positions: Mapping[str, int]

    def position(self, symbol: str) -> int:
        return self.positions.get(symbol.upper(), 0)


class Ledger:
    """
    Single writer per simulated day: the engine applies fills then marks to market.
    """

    def __init__(self, initial_capital: float):
        self.initial_capital = float(initial_capital)
        self.cash = float(initial_capital)
        self._entries: Dict[str, LedgerEntry] = {}
        self._nav = float(initial_capital)

    @property
    def nav(self) -> float:
        """NAV as of the last mark_to_market."""
        return self._nav

    @property
    def entries(self) -> Mapping[str, LedgerEntry]:
        return MappingProxyType(self._entries)

    def entry(self, symbol: str) -> Optional[LedgerEntry]:
        return self._entries.get(symbol.upper())

    def position(self, symbol: str) -> int:
        e = self._entries.get(symbol.upper())
        return e.quantity if e else 0

    def apply_fill(self, symbol: str, quantity: int, price: float, commission: float = 0.0) -> LedgerEntry:
        """Book a fill: cash -= quantity * price + commission; update cost basis and realized P&L."""
        symbol = symbol.upper()
        entry = self._entries.get(symbol)
        if entry is None:
            entry = LedgerEntry(symbol=symbol)
            self._entries[symbol] = entry

        old_qty = entry.quantity
        new_qty = old_qty + quantity
        if old_qty == 0 or (old_qty > 0) == (quantity > 0):
            # Opening or adding in the same direction
            entry.cost_basis += quantity * price
        else:
            closed = min(abs(quantity), abs(old_qty))
            sign = 1 if old_qty > 0 else -1
            avg = entry.average_cost
            entry.realized_pnl += (price - avg) * closed * sign
            entry.cost_basis -= avg * closed * sign
            if abs(quantity) > abs(old_qty):
                # Flipped through zero: remainder opens at the fill price
                entry.cost_basis = new_qty * price
        if new_qty == 0:
            entry.cost_basis = 0.0
        entry.quantity = new_qty
        entry.realized_pnl -= commission
        entry.commission += commission
        entry.last_price = price
        self.cash -= quantity * price + commission
        return entry

    def mark_to_market(self, prices: Mapping[str, Optional[float]]) -> float:
        """
        Update last marks from `prices` (symbol -> close; None keeps the previous mark)
        and recompute NAV.
        """
        for symbol, entry in self._entries.items():
            price = prices.get(symbol)
            if price is not None:
                entry.last_price = float(price)
            if entry.quantity and entry.last_price is None:
                logger.warning("No mark for %s; valued at zero", symbol)
            entry.unrealized_pnl = entry.market_value - entry.cost_basis if entry.quantity else 0.0
        self._nav = self.cash + sum(e.market_value for e in self._entries.values())
        return self._nav

    def snapshot(self) -> LedgerSnapshot:
        positions = {s: e.quantity for s, e in self._entries.items() if e.quantity}
        return LedgerSnapshot(cash=self.cash, nav=self._nav, positions=MappingProxyType(positions))
