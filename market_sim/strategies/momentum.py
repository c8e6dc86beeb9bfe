"""
Momentum rotation: at each month end rank the asset menu by lookback return,
hold the top N equally weighted. An optional cash-filter asset sets the hurdle
a pick must beat, otherwise its slot stays in cash.

With hedge assets the book splits in two: the risk-on picks share
1 - hedge_weight and the best-ranked hedge assets share hedge_weight
(the 60/40 "12% solution" layout).
"""

from __future__ import annotations
import logging
import math
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from market_sim.core.errors import DataUnavailableError, InsufficientDataError
from market_sim.portfolio.ledger import LedgerSnapshot
from market_sim.strategies.base import DecisionStrategy, MarketSnapshot, TargetAllocation
from market_sim.strategies.ranking import RankedScore, rank_by_score

logger = logging.getLogger("market_sim.strategies.momentum")


def lookback_return(instrument, lookback_days: int) -> float:
    """close[0] / close[lookback] - 1, NaN when the history is too short."""
    try:
        past = instrument.close_at(lookback_days)
        if past <= 0:
            return float("nan")
        return instrument.close_at(0) / past - 1.0
    except (DataUnavailableError, InsufficientDataError):
        return float("nan")


class MomentumRotationStrategy(DecisionStrategy):
    """Monthly top-N momentum rotation with an optional absolute-momentum cash filter and hedge sleeve."""

    def __init__(
        self,
        assets: Sequence[str],
        num_picks: int = 1,
        lookback_days: int = 63,
        cash_filter: Optional[str] = None,
        monthly: bool = True,
        min_momentum: Optional[float] = None,
        hedge_assets: Sequence[str] = (),
        hedge_weight: float = 0.0,
        hedge_picks: int = 1,
    ):
        if not assets:
            raise ValueError("asset menu is empty")
        if num_picks < 1:
            raise ValueError(f"num_picks must be >= 1, got {num_picks}")
        if not 0.0 <= hedge_weight <= 1.0:
            raise ValueError(f"hedge_weight must be within [0, 1], got {hedge_weight}")
        self.assets: Tuple[str, ...] = tuple(sorted({a.upper() for a in assets}))
        self.hedge_assets: Tuple[str, ...] = tuple(sorted({a.upper() for a in hedge_assets}))
        if set(self.assets) & set(self.hedge_assets):
            raise ValueError("an asset cannot be both risk-on and hedge")
        if self.hedge_assets and hedge_picks < 1:
            raise ValueError(f"hedge_picks must be >= 1, got {hedge_picks}")
        self.num_picks = num_picks
        self.lookback_days = lookback_days
        self.cash_filter = cash_filter.upper() if cash_filter else None
        self.monthly = monthly
        self.min_momentum = min_momentum
        self.hedge_weight = hedge_weight if self.hedge_assets else 0.0
        self.hedge_picks = hedge_picks
        self.last_ranking: Tuple[RankedScore, ...] = ()
        self.last_hedge_ranking: Tuple[RankedScore, ...] = ()

    def required_symbols(self) -> Sequence[str]:
        symbols = list(self.assets) + list(self.hedge_assets)
        if self.cash_filter and self.cash_filter not in symbols:
            symbols.append(self.cash_filter)
        return symbols

    def _hurdle(self, market: MarketSnapshot) -> Optional[float]:
        candidates = []
        if self.cash_filter:
            cash = lookback_return(market[self.cash_filter], self.lookback_days)
            if math.isfinite(cash):
                candidates.append(cash)
        if self.min_momentum is not None:
            candidates.append(self.min_momentum)
        return max(candidates) if candidates else None

    def decide(self, as_of: date, market: MarketSnapshot, ledger: LedgerSnapshot) -> Iterable[TargetAllocation]:
        if self.monthly and not market.is_month_end:
            return []
        self.last_ranking = rank_by_score({s: lookback_return(market[s], self.lookback_days) for s in self.assets})
        hurdle = self._hurdle(market)

        weights: Dict[str, float] = {s: 0.0 for s in self.assets + self.hedge_assets}
        risk_weight = (1.0 - self.hedge_weight) / self.num_picks
        picks = [r.symbol for r in self.last_ranking[: self.num_picks] if hurdle is None or r.score > hurdle]
        for symbol in picks:
            weights[symbol] = risk_weight

        hedges: List[str] = []
        if self.hedge_assets:
            self.last_hedge_ranking = rank_by_score(
                {s: lookback_return(market[s], self.lookback_days) for s in self.hedge_assets}
            )
            hedges = [r.symbol for r in self.last_hedge_ranking[: self.hedge_picks]]
            for symbol in hedges:
                weights[symbol] = self.hedge_weight / len(hedges)

        logger.info(
            "%s rebalance: picks=%s hedges=%s hurdle=%s",
            as_of, picks, hedges, "n/a" if hurdle is None else f"{hurdle:.4f}",
        )
        return sorted(weights.items())
