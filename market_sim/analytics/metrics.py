"""
Performance metrics on a daily NAV series: returns, Sharpe, Sortino, max drawdown, CAGR,
plus a year x month return table.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics for one simulation."""
    total_return_pct: float
    cagr_pct: float
    volatility_pct: float
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown_pct: float
    trading_days: int
    total_fills: int = 0
    total_commission: float = 0.0


def period_returns(equity: Sequence[float]) -> List[float]:
    """Simple returns between consecutive NAV values."""
    arr = np.asarray(equity, dtype=float)
    if arr.size < 2:
        return []
    prev = arr[:-1]
    rets = np.where(prev != 0, arr[1:] / np.where(prev != 0, prev, 1.0) - 1.0, 0.0)
    return rets.tolist()


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe of period returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    if excess.std() <= 1e-12:
        return 0.0
    return float(np.sqrt(periods_per_year) * excess.mean() / excess.std())


def sortino_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sortino (downside deviation)."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    excess = arr - risk_free_rate / periods_per_year
    downside = arr[arr < 0]
    if len(downside) == 0 or downside.std() <= 1e-12:
        return sharpe_ratio(returns, risk_free_rate, periods_per_year)
    return float(np.sqrt(periods_per_year) * excess.mean() / downside.std())


def max_drawdown(equity: Sequence[float]) -> float:
    """Max drawdown in percent of the running peak (negative, e.g. -15.0)."""
    if len(equity) == 0:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peak = np.maximum.accumulate(arr)
    dd = (arr - peak) / np.where(peak != 0, peak, 1)
    return float(np.min(dd)) * 100.0


def cagr(equity: Sequence[float], periods_per_year: float = 252.0) -> float:
    """Compound annual growth rate in percent."""
    if len(equity) < 2 or equity[0] <= 0 or equity[-1] <= 0:
        return 0.0
    years = (len(equity) - 1) / periods_per_year
    return ((equity[-1] / equity[0]) ** (1.0 / years) - 1.0) * 100.0


def compute_metrics(
    equity: Sequence[float],
    risk_free_rate: float = 0.0,
    periods_per_year: float = 252.0,
    total_fills: int = 0,
    total_commission: float = 0.0,
) -> PerformanceMetrics:
    """Full metrics from a NAV series (first value = starting capital)."""
    if len(equity) == 0:
        return PerformanceMetrics(
            total_return_pct=0.0, cagr_pct=0.0, volatility_pct=0.0, sharpe_ratio=0.0,
            sortino_ratio=0.0, max_drawdown_pct=0.0, trading_days=0,
            total_fills=total_fills, total_commission=total_commission,
        )
    rets = period_returns(equity)
    vol = float(np.std(rets) * np.sqrt(periods_per_year) * 100.0) if rets else 0.0
    return PerformanceMetrics(
        total_return_pct=(equity[-1] / equity[0] - 1.0) * 100.0 if equity[0] else 0.0,
        cagr_pct=cagr(equity, periods_per_year),
        volatility_pct=vol,
        sharpe_ratio=sharpe_ratio(rets, risk_free_rate, periods_per_year),
        sortino_ratio=sortino_ratio(rets, risk_free_rate, periods_per_year),
        max_drawdown_pct=max_drawdown(equity),
        trading_days=len(rets),
        total_fills=total_fills,
        total_commission=total_commission,
    )


def monthly_returns(dates: Sequence[date], equity: Sequence[float], initial: Optional[float] = None) -> pd.DataFrame:
    """
    Year x month table of returns in percent, with a "Total" column per year.
    Each month is measured from the previous month's last NAV (or `initial` for the first month).
    """
    series = pd.Series(list(equity), index=pd.to_datetime(list(dates)), dtype=float)
    if series.empty:
        return pd.DataFrame()
    month_end = series.groupby([series.index.year, series.index.month]).last()
    start = initial if initial is not None else series.iloc[0]
    prev = month_end.shift(1)
    prev.iloc[0] = start
    rets = (month_end / prev - 1.0) * 100.0
    table = rets.unstack(level=1)
    table.index.name = "year"
    table.columns = [pd.Timestamp(2000, m, 1).strftime("%b") for m in table.columns]
    year_end = series.groupby(series.index.year).last()
    year_start = year_end.shift(1)
    year_start.iloc[0] = start
    table["Total"] = (year_end / year_start - 1.0) * 100.0
    return table
