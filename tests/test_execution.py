"""Unit tests for execution.sizing and execution.simulated."""

from datetime import date

import pytest
from market_sim.core.types import FillPolicy
from market_sim.execution.base import PendingOrder
from market_sim.execution.simulated import SimulatedExecution
from market_sim.execution.sizing import round_shares, target_shares
from market_sim.portfolio.ledger import Ledger

D1 = date(2019, 1, 2)
D2 = date(2019, 1, 3)


def _target(symbol, weight, seq=1, policy=FillPolicy.CURRENT_BAR_CLOSE, submitted=D1):
    return PendingOrder(symbol=symbol, submitted=submitted, fill_policy=policy, target_weight=weight, sequence=seq)


def _delta(symbol, shares, seq=1):
    return PendingOrder(symbol=symbol, submitted=D1, fill_policy=FillPolicy.CURRENT_BAR_CLOSE, delta_shares=shares, sequence=seq)


def test_truncation_toward_zero():
    assert round_shares(10.9) == 10
    assert round_shares(-10.9) == -10
    assert round_shares(float("nan")) == 0
    assert round_shares(157, lot_size=100) == 100
    assert target_shares(1.0, 100000.0, 30.0) == 3333
    assert target_shares(-0.5, 100000.0, 30.0) == -1666
    with pytest.raises(ValueError):
        target_shares(1.0, 100000.0, 0.0)


def test_target_exposure_never_exceeded():
    for weight, price in ((1.0, 33.33), (0.37, 7.1), (-0.8, 251.9)):
        shares = target_shares(weight, 100000.0, price)
        assert abs(shares * price) <= abs(weight * 100000.0)


def test_settle_target_fills_and_commission():
    ledger = Ledger(100000.0)
    model = SimulatedExecution(commission_per_share=0.01)
    records = model.settle(D1, [_target("SPY", 1.0)], {"SPY": 30.0}, ledger)
    assert len(records) == 1
    fill = records[0]
    assert fill.status == "filled"
    assert fill.quantity == 3333
    assert fill.commission == pytest.approx(33.33)
    assert fill.comment == "open"
    assert ledger.cash == pytest.approx(100000.0 - 3333 * 30.0 - 33.33)


def test_second_identical_target_has_zero_delta():
    ledger = Ledger(100000.0)
    model = SimulatedExecution()
    model.settle(D1, [_target("SPY", 1.0)], {"SPY": 30.0}, ledger)
    records = model.settle(D1, [_target("SPY", 1.0, seq=2)], {"SPY": 30.0}, ledger)
    assert records == []
    assert ledger.position("SPY") == 3333


def test_orders_net_in_submission_order():
    ledger = Ledger(100000.0)
    model = SimulatedExecution()
    orders = [_delta("SPY", 50, seq=3), _target("SPY", 0.5, seq=1), _delta("SPY", 10, seq=2)]
    records = model.settle(D1, orders, {"SPY": 100.0}, ledger)
    assert len(records) == 1
    # target 500 shares, then +10, then +50
    assert records[0].quantity == 560
    assert ledger.position("SPY") == 560


def test_sizing_uses_pre_trade_nav():
    ledger = Ledger(100000.0)
    model = SimulatedExecution()
    records = model.settle(D1, [_target("SPY", 0.5), _target("AGG", 0.5, seq=2)], {"SPY": 100.0, "AGG": 50.0}, ledger)
    assert [r.symbol for r in records] == ["AGG", "SPY"]
    assert ledger.position("SPY") == 500
    assert ledger.position("AGG") == 1000


def test_missing_price_drops_order():
    ledger = Ledger(100000.0)
    model = SimulatedExecution()
    records = model.settle(D1, [_target("SPY", 1.0)], {"SPY": None}, ledger)
    assert records[0].status == "dropped"
    assert records[0].quantity == 0
    assert ledger.cash == 100000.0
    assert ledger.position("SPY") == 0


def test_close_comment():
    ledger = Ledger(100000.0)
    model = SimulatedExecution()
    model.settle(D1, [_target("SPY", 1.0)], {"SPY": 100.0}, ledger)
    records = model.settle(D2, [_target("SPY", 0.0, submitted=D2)], {"SPY": 100.0}, ledger)
    assert records[0].comment == "close"
    assert records[0].quantity == -1000


def test_pending_order_due_dates():
    current = _target("SPY", 1.0)
    later = _target("SPY", 1.0, policy=FillPolicy.NEXT_BAR_CLOSE)
    assert current.is_due(D1)
    assert not later.is_due(D1)
    assert later.is_due(D2)


def test_drop_records():
    model = SimulatedExecution()
    records = model.drop(D2, [_delta("SPY", 5)], "simulation ended")
    assert records[0].status == "dropped"
    assert records[0].reason == "simulation ended"
    assert records[0].requested_delta == 5
