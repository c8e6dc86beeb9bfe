"""Unit tests for analytics.metrics."""

from datetime import date

import pytest
from market_sim.analytics.metrics import (
    cagr,
    compute_metrics,
    max_drawdown,
    monthly_returns,
    period_returns,
    sharpe_ratio,
    sortino_ratio,
)


def test_sharpe_ratio_empty():
    assert sharpe_ratio([]) == 0.0


def test_sharpe_ratio_constant():
    assert sharpe_ratio([0.01] * 10) == 0.0  # zero std


def test_sortino_without_losses_falls_back_to_sharpe():
    rets = [0.01, 0.02, 0.015]
    assert sortino_ratio(rets) == sharpe_ratio(rets)


def test_period_returns():
    assert period_returns([100.0, 110.0, 99.0]) == pytest.approx([0.1, -0.1])
    assert period_returns([100.0]) == []


def test_max_drawdown():
    # equity 1 -> 1.2 -> 1.0 -> 1.1  =>  peak 1.2, dd (1.0-1.2)/1.2 = -16.67%
    cum = [1.0, 1.2, 1.0, 1.1]
    assert max_drawdown(cum) == pytest.approx(-16.666, rel=0.01)


def test_cagr_one_year():
    equity = [100.0] + [100.0] * 251 + [110.0]
    assert cagr(equity) == pytest.approx(10.0)


def test_compute_metrics():
    m = compute_metrics([100.0, 110.0, 99.0, 121.0], total_fills=3, total_commission=1.5)
    assert m.total_return_pct == pytest.approx(21.0)
    assert m.trading_days == 3
    assert m.total_fills == 3
    assert m.max_drawdown_pct == pytest.approx(-10.0)


def test_compute_metrics_empty():
    m = compute_metrics([])
    assert m.trading_days == 0
    assert m.total_return_pct == 0.0


def test_monthly_returns_table():
    dates = [date(2019, 1, 15), date(2019, 1, 31), date(2019, 2, 28), date(2020, 1, 31)]
    table = monthly_returns(dates, [105.0, 110.0, 121.0, 133.1], initial=100.0)
    assert table.loc[2019, "Jan"] == pytest.approx(10.0)
    assert table.loc[2019, "Feb"] == pytest.approx(10.0)
    assert table.loc[2019, "Total"] == pytest.approx(21.0)
    assert table.loc[2020, "Jan"] == pytest.approx(10.0)
    assert table.loc[2020, "Total"] == pytest.approx(10.0)
