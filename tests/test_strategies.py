"""Unit tests for strategies.ranking, strategies.base and strategies.momentum."""

from datetime import date

import pytest
from market_sim.backtesting.engine import SimulationEngine
from market_sim.strategies.base import MarketSnapshot
from market_sim.strategies.momentum import MomentumRotationStrategy
from market_sim.strategies.ranking import rank_by_score, top_n

from conftest import make_source, trading_dates


def test_rank_ties_break_by_symbol():
    ranked = rank_by_score({"SPY": 0.1, "AGG": 0.1, "EFA": 0.3, "BAD": float("nan")})
    assert [r.symbol for r in ranked] == ["EFA", "AGG", "SPY"]
    assert [r.rank for r in ranked] == [1, 2, 3]


def test_ranking_is_fresh_and_immutable():
    scores = {"A": 1.0, "B": 2.0}
    first = rank_by_score(scores)
    scores["C"] = 3.0
    assert len(first) == 2
    assert isinstance(first, tuple)
    assert [r.symbol for r in top_n(scores, 1)] == ["C"]
    assert top_n(scores, 0) == ()


def test_month_end_detection():
    assert MarketSnapshot(date(2019, 1, 31), date(2019, 2, 1), {}).is_month_end
    assert not MarketSnapshot(date(2019, 1, 30), date(2019, 1, 31), {}).is_month_end
    assert MarketSnapshot(date(2019, 2, 8), None, {}).is_month_end


def test_momentum_strategy_validation():
    with pytest.raises(ValueError):
        MomentumRotationStrategy([])
    with pytest.raises(ValueError):
        MomentumRotationStrategy(["SPY"], num_picks=0)
    strategy = MomentumRotationStrategy(["spy", "efa"], cash_filter="bil")
    assert list(strategy.required_symbols()) == ["EFA", "SPY", "BIL"]


def _rotation_engine(strategy, closes_by_symbol):
    days = trading_dates("2019-01-02", "2019-02-08")
    engine = SimulationEngine(strategy, days[0], days[-1])
    for symbol, fn in closes_by_symbol.items():
        engine.add_data_source(make_source(symbol, days, [fn(i) for i in range(len(days))]))
    return engine


def test_momentum_picks_strongest_at_month_end():
    strategy = MomentumRotationStrategy(["A", "B", "C"], num_picks=1, lookback_days=5)
    engine = _rotation_engine(strategy, {
        "A": lambda i: 100.0 + i,
        "B": lambda i: 100.0 + 2 * i,
        "C": lambda i: 100.0 - 0.5 * i,
    })
    result = engine.run()
    jan_31 = [o for o in result.orders if o.date == date(2019, 1, 31)]
    assert [(o.symbol, o.quantity) for o in jan_31] == [("B", 714)]
    assert jan_31[0].target_weight == 1.0
    assert [r.symbol for r in strategy.last_ranking] == ["B", "A", "C"]
    assert not any(o.date < date(2019, 1, 31) for o in result.orders)


def test_cash_filter_keeps_slots_in_cash():
    strategy = MomentumRotationStrategy(["A", "C"], num_picks=2, lookback_days=5, cash_filter="BIL")
    engine = _rotation_engine(strategy, {
        "A": lambda i: 100.0 - i,
        "C": lambda i: 100.0 - 0.5 * i,
        "BIL": lambda i: 50.0,
    })
    result = engine.run()
    assert result.fills == []
    assert result.equity[-1].nav == pytest.approx(100000.0)


def test_short_history_scores_nan():
    strategy = MomentumRotationStrategy(["A"], lookback_days=500)
    engine = _rotation_engine(strategy, {"A": lambda i: 100.0 + i})
    engine.run()
    assert strategy.last_ranking == ()


def test_snapshot_lists_missing_instruments():
    class Stub:
        def __init__(self, available):
            self.is_available = available

    market = MarketSnapshot(date(2019, 1, 2), date(2019, 1, 3), {"B": Stub(False), "A": Stub(True), "C": Stub(False)})
    assert market.missing() == ["B", "C"]
    assert [i.is_available for i in market.available()] == [True]


def test_hedge_sleeve_splits_book():
    strategy = MomentumRotationStrategy(
        ["A", "B"], num_picks=1, lookback_days=5, hedge_assets=["h1", "h2"], hedge_weight=0.4,
    )
    assert list(strategy.required_symbols()) == ["A", "B", "H1", "H2"]
    engine = _rotation_engine(strategy, {
        "A": lambda i: 100.0 + i,
        "B": lambda i: 100.0 + 2 * i,
        "H1": lambda i: 50.0 + 0.5 * i,
        "H2": lambda i: 50.0 - 0.1 * i,
    })
    result = engine.run()
    jan_31 = {o.symbol: o for o in result.orders if o.date == date(2019, 1, 31)}
    assert sorted(jan_31) == ["B", "H1"]
    assert jan_31["B"].target_weight == pytest.approx(0.6)
    assert jan_31["H1"].target_weight == pytest.approx(0.4)
    assert [r.symbol for r in strategy.last_hedge_ranking] == ["H1", "H2"]


def test_min_momentum_leaves_only_hedge():
    strategy = MomentumRotationStrategy(
        ["A", "C"], lookback_days=5, min_momentum=0.0, hedge_assets=["H"], hedge_weight=0.4,
    )
    engine = _rotation_engine(strategy, {
        "A": lambda i: 100.0 - i,
        "C": lambda i: 100.0 - 0.5 * i,
        "H": lambda i: 50.0,
    })
    result = engine.run()
    assert {o.symbol for o in result.fills} == {"H"}


def test_hedge_settings_validation():
    with pytest.raises(ValueError):
        MomentumRotationStrategy(["SPY", "TLT"], hedge_assets=["tlt"], hedge_weight=0.4)
    with pytest.raises(ValueError):
        MomentumRotationStrategy(["SPY"], hedge_assets=["TLT"], hedge_weight=1.5)
    with pytest.raises(ValueError):
        MomentumRotationStrategy(["SPY"], hedge_assets=["TLT"], hedge_picks=0)
    assert MomentumRotationStrategy(["SPY"], hedge_weight=0.4).hedge_weight == 0.0
