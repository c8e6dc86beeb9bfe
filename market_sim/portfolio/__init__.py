"""Portfolio: cash, positions, NAV."""

from market_sim.portfolio.ledger import Ledger, LedgerEntry, LedgerSnapshot

__all__ = ["Ledger", "LedgerEntry", "LedgerSnapshot"]
