"""Analytics: option pricing (Black-Scholes) and performance metrics."""

from market_sim.analytics.black_scholes import (
    ImpliedVolResult,
    GreeksResult,
    black_scholes_price,
    evaluate_greeks,
    solve_implied_volatility,
    no_arbitrage_bounds,
)
from market_sim.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    sharpe_ratio,
    sortino_ratio,
    max_drawdown,
    cagr,
    monthly_returns,
)

__all__ = [
    "ImpliedVolResult",
    "GreeksResult",
    "black_scholes_price",
    "evaluate_greeks",
    "solve_implied_volatility",
    "no_arbitrage_bounds",
    "PerformanceMetrics",
    "compute_metrics",
    "sharpe_ratio",
    "sortino_ratio",
    "max_drawdown",
    "cagr",
    "monthly_returns",
]
