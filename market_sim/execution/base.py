"""Order model and the abstract execution interface used by the engine."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Mapping, Optional, Sequence

from market_sim.core.types import FillPolicy, OrderRecord
from market_sim.portfolio.ledger import Ledger


@dataclass(frozen=True)
class PendingOrder:
    """
    A submitted order waiting for settlement. Either a target weight (of NAV)
    or a raw share delta.
    """
    symbol: str
    submitted: date
    fill_policy: FillPolicy
    target_weight: Optional[float] = None
    delta_shares: int = 0
    comment: str = ""
    sequence: int = 0

    def is_due(self, d: date) -> bool:
        """Current-bar orders settle on their own date, next-bar orders on any later date."""
        if self.fill_policy == FillPolicy.NEXT_BAR_CLOSE:
            return d > self.submitted
        return d >= self.submitted


class ExecutionModel(ABC):
    """Settles due orders against one day's price snapshot."""

    @abstractmethod
    def settle(
        self,
        as_of: date,
        orders: Sequence[PendingOrder],
        prices: Mapping[str, Optional[float]],
        ledger: Ledger,
    ) -> List[OrderRecord]:
        """
        Net orders per symbol, fill them at `prices` (symbol -> close on `as_of`,
        None if no bar) and book the fills. Returns the order log rows.
        """
        pass

    def drop(self, as_of: date, orders: Sequence[PendingOrder], reason: str) -> List[OrderRecord]:
        """Order log rows for orders discarded without settlement."""
        return [
            OrderRecord(
                date=as_of, symbol=o.symbol, requested_delta=o.delta_shares, quantity=0,
                price=0.0, commission=0.0, status="dropped", comment=o.comment,
                target_weight=o.target_weight, reason=reason,
            )
            for o in orders
        ]
