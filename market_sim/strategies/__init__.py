"""Strategies: decision interface, ranking and a momentum rotation reference strategy."""

from market_sim.strategies.base import DecisionStrategy, MarketSnapshot, TargetAllocation
from market_sim.strategies.ranking import RankedScore, rank_by_score, top_n
from market_sim.strategies.momentum import MomentumRotationStrategy, lookback_return

__all__ = [
    "DecisionStrategy",
    "MarketSnapshot",
    "TargetAllocation",
    "RankedScore",
    "rank_by_score",
    "top_n",
    "MomentumRotationStrategy",
    "lookback_return",
]
