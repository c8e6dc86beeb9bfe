"""Decision capability: produce target allocations given a market snapshot."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from market_sim.instruments.instrument import Instrument, InstrumentView
from market_sim.portfolio.ledger import LedgerSnapshot

InstrumentRef = Union[str, Instrument, InstrumentView]
TargetAllocation = Tuple[InstrumentRef, float]


@dataclass(frozen=True)
class MarketSnapshot:
    """Read-only view of all attached instruments on one simulated date."""
    date: date
    next_date: Optional[date]
    instruments: Mapping[str, InstrumentView]

    def __getitem__(self, symbol: str) -> InstrumentView:
        return self.instruments[symbol.upper()]

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self.instruments

    def available(self) -> List[InstrumentView]:
        return [i for i in self.instruments.values() if i.is_available]

    def missing(self) -> List[str]:
        return sorted(s for s, i in self.instruments.items() if not i.is_available)

    @property
    def is_month_end(self) -> bool:
        """Last simulated date of its month (the next date falls in another month, or none follows)."""
        return self.next_date is None or self.next_date.month != self.date.month


class DecisionStrategy(ABC):
    """Strategy returns (instrument, target_weight) pairs once per trading day."""

    def required_symbols(self) -> Sequence[str]:
        """Symbols whose missing bars should skip the day's decisions."""
        return ()

    @abstractmethod
    def decide(self, as_of: date, market: MarketSnapshot, ledger: LedgerSnapshot) -> Iterable[TargetAllocation]:
        """Target weights of NAV. Symbols left out keep their positions."""
        pass
