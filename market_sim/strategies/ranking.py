"""
Deterministic ranking: highest score first, ties by symbol ascending.
Each call builds a fresh immutable table.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Mapping, Tuple


@dataclass(frozen=True)
class RankedScore:
    symbol: str
    score: float
    rank: int  # 1 = best


def rank_by_score(scores: Mapping[str, float]) -> Tuple[RankedScore, ...]:
    """Non-finite scores are left out of the ranking."""
    valid = [(s, float(v)) for s, v in scores.items() if v is not None and math.isfinite(v)]
    ordered = sorted(valid, key=lambda item: (-item[1], item[0]))
    return tuple(RankedScore(symbol=s, score=v, rank=i + 1) for i, (s, v) in enumerate(ordered))


def top_n(scores: Mapping[str, float], n: int) -> Tuple[RankedScore, ...]:
    return rank_by_score(scores)[: max(n, 0)]
