"""
Deterministic fill model: orders for one symbol net to a single fill at the day's close,
with an optional fixed commission per share. No slippage, no partial fills.
"""

from __future__ import annotations
import logging
import math
from collections import OrderedDict
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from market_sim.core.errors import InsufficientDataError
from market_sim.core.types import OrderRecord
from market_sim.execution.base import ExecutionModel, PendingOrder
from market_sim.execution.sizing import target_shares
from market_sim.portfolio.ledger import Ledger

logger = logging.getLogger("market_sim.execution")


def _resolve_price(symbol: str, prices: Mapping[str, Optional[float]]) -> float:
    price = prices.get(symbol)
    if price is None or not math.isfinite(price) or price <= 0:
        raise InsufficientDataError(symbol, f"{symbol}: no valid fill price")
    return float(price)


def _default_comment(current: int, target: int) -> str:
    if current == 0:
        return "open"
    if target == 0:
        return "close"
    return "rebalance"


class SimulatedExecution(ExecutionModel):
    """Fills at the close of the settlement date."""

    def __init__(self, commission_per_share: float = 0.0, lot_size: int = 1):
        self.commission_per_share = commission_per_share
        self.lot_size = lot_size

    def net_delta(self, orders: Sequence[PendingOrder], current: int, nav: float, price: float) -> int:
        """
        Replay orders in submission order: a target weight sets the intended
        position, a raw delta adds to it. Returns intended - current.
        """
        intended = current
        for order in orders:
            if order.target_weight is not None:
                intended = target_shares(order.target_weight, nav, price, self.lot_size)
            else:
                intended += order.delta_shares
        return intended - current

    def settle(
        self,
        as_of: date,
        orders: Sequence[PendingOrder],
        prices: Mapping[str, Optional[float]],
        ledger: Ledger,
    ) -> List[OrderRecord]:
        if not orders:
            return []
        # Size everything against one pre-trade NAV on this day's snapshot.
        nav = ledger.mark_to_market(prices)
        grouped: Dict[str, List[PendingOrder]] = OrderedDict()
        for order in sorted(orders, key=lambda o: o.sequence):
            grouped.setdefault(order.symbol, []).append(order)

        records: List[OrderRecord] = []
        for symbol in sorted(grouped):
            group = grouped[symbol]
            weight = next((o.target_weight for o in reversed(group) if o.target_weight is not None), None)
            requested = sum(o.delta_shares for o in group)
            comments = [o.comment for o in group if o.comment]
            current = ledger.position(symbol)
            try:
                price = _resolve_price(symbol, prices)
            except InsufficientDataError as e:
                logger.warning("Dropping %d order(s) on %s: %s", len(group), as_of, e)
                records.append(OrderRecord(
                    date=as_of, symbol=symbol, requested_delta=requested, quantity=0, price=0.0,
                    commission=0.0, status="dropped", comment=" / ".join(comments),
                    target_weight=weight, reason=str(e),
                ))
                continue
            delta = self.net_delta(group, current, nav, price)
            if delta == 0:
                continue
            commission = abs(delta) * self.commission_per_share
            ledger.apply_fill(symbol, delta, price, commission)
            comment = " / ".join(comments) or _default_comment(current, current + delta)
            logger.debug("%s %s %+d @ %.4f (%s)", as_of, symbol, delta, price, comment)
            records.append(OrderRecord(
                date=as_of, symbol=symbol, requested_delta=requested if weight is None else delta,
                quantity=delta, price=price, commission=commission, status="filled",
                comment=comment, target_weight=weight,
            ))

        ledger.mark_to_market(prices)
        return records
