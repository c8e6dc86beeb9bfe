"""Unit tests for analytics.black_scholes."""

import math

import pytest
from market_sim.analytics.black_scholes import (
    black_scholes_price,
    evaluate_greeks,
    no_arbitrage_bounds,
    solve_implied_volatility,
)
from market_sim.core.errors import NumericNonConvergenceError, OutOfBoundsError

S, K, T, R, Q = 1921.42, 1845.0, 15 / 365, 0.024, 0.018


def test_call_fixture():
    iv = solve_implied_volatility(S, K, T, R, Q, 87.90, is_put=False)
    assert iv.converged
    assert iv.volatility == pytest.approx(0.2477, abs=1e-4)
    g = evaluate_greeks(S, K, T, iv.volatility, R, Q, is_put=False)
    assert g.delta == pytest.approx(0.7985, abs=1e-3)
    assert g.gamma == pytest.approx(0.002908, rel=2e-3)
    assert g.theta == pytest.approx(-336.46, rel=2e-3)
    assert g.vega == pytest.approx(109.21, rel=2e-3)
    assert g.theta_per_day == pytest.approx(g.theta / 365)


def test_put_fixture():
    iv = solve_implied_volatility(S, K, T, R, Q, 10.50, is_put=True)
    assert iv.volatility == pytest.approx(0.2423, abs=1e-4)
    g = evaluate_greeks(S, K, T, iv.volatility, R, Q, is_put=True)
    assert g.delta == pytest.approx(-0.1959, abs=1e-3)


@pytest.mark.parametrize("is_put", [False, True])
@pytest.mark.parametrize("vol", [0.15, 0.4, 0.9])
@pytest.mark.parametrize("t", [0.1, 0.5, 2.0])
@pytest.mark.parametrize("strike", [90.0, 100.0, 110.0])
def test_round_trip(strike, t, vol, is_put):
    price = black_scholes_price(100.0, strike, t, vol, 0.01, 0.02, is_put)
    iv = solve_implied_volatility(100.0, strike, t, 0.01, 0.02, price, is_put)
    assert iv.converged
    assert iv.volatility == pytest.approx(vol, abs=1e-5)
    assert iv.price == pytest.approx(price, abs=1e-6)


def test_greeks_price_matches_pricer():
    g = evaluate_greeks(S, K, T, 0.25, R, Q, is_put=False)
    assert g.price == pytest.approx(black_scholes_price(S, K, T, 0.25, R, Q, False))


def test_put_call_parity():
    call = black_scholes_price(S, K, T, 0.25, R, Q, False)
    put = black_scholes_price(S, K, T, 0.25, R, Q, True)
    assert call - put == pytest.approx(S * math.exp(-Q * T) - K * math.exp(-R * T), abs=1e-8)


def test_gamma_vega_same_for_put_and_call():
    call = evaluate_greeks(S, K, T, 0.25, R, Q, is_put=False)
    put = evaluate_greeks(S, K, T, 0.25, R, Q, is_put=True)
    assert call.gamma == pytest.approx(put.gamma)
    assert call.vega == pytest.approx(put.vega)
    assert call.delta - put.delta == pytest.approx(math.exp(-Q * T))


def test_out_of_bounds_prices():
    lower, upper = no_arbitrage_bounds(S, K, T, R, Q, is_put=False)
    with pytest.raises(OutOfBoundsError):
        solve_implied_volatility(S, K, T, R, Q, upper + 1.0)
    with pytest.raises(OutOfBoundsError):
        solve_implied_volatility(S, K, T, R, Q, lower - 1.0)
    with pytest.raises(OutOfBoundsError):
        solve_implied_volatility(S, K, T, R, Q, lower)


def test_expired_or_degenerate_inputs():
    with pytest.raises(OutOfBoundsError):
        solve_implied_volatility(S, K, 0.0, R, Q, 87.90)
    with pytest.raises(OutOfBoundsError):
        evaluate_greeks(S, K, -1.0, 0.25, R, Q)
    with pytest.raises(OutOfBoundsError):
        evaluate_greeks(0.0, K, T, 0.25, R, Q)
    with pytest.raises(OutOfBoundsError):
        evaluate_greeks(S, K, T, 0.0, R, Q)


def test_non_convergence_flag():
    iv = solve_implied_volatility(S, K, T, R, Q, 87.90, max_iterations=1)
    assert iv.converged is False
    assert iv.iterations == 1
    assert math.isfinite(iv.volatility)


def test_non_convergence_strict():
    with pytest.raises(NumericNonConvergenceError) as exc:
        solve_implied_volatility(S, K, T, R, Q, 87.90, max_iterations=1, strict=True)
    assert exc.value.result is not None
    assert exc.value.result.converged is False


def test_high_volatility_quote_brackets():
    price = black_scholes_price(100.0, 100.0, 1.0, 8.0)
    iv = solve_implied_volatility(100.0, 100.0, 1.0, 0.0, 0.0, price)
    assert iv.volatility == pytest.approx(8.0, rel=1e-3)
