"""
Black-Scholes-Merton analytics for European options with a continuous dividend yield.

Pure functions: pricing, Greeks and an implied-volatility solver
(Newton-Raphson seeded by the Corrado-Miller estimate, bracketed by bisection).
Time is in years of 365 calendar days; volatility and rates are annualized decimals.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from math import erf, exp, isfinite, log, pi, sqrt
from typing import Tuple

from market_sim.core.errors import NumericNonConvergenceError, OutOfBoundsError

logger = logging.getLogger("market_sim.analytics.black_scholes")

DAYS_PER_YEAR = 365.0
MIN_VOLATILITY = 1e-6
MAX_VOLATILITY = 100.0


@dataclass(frozen=True)
class ImpliedVolResult:
    """Implied volatility and the theoretical price it reproduces."""
    price: float
    volatility: float
    converged: bool = True
    iterations: int = 0


@dataclass(frozen=True)
class GreeksResult:
    """Price and first/second order sensitivities. Vega is per 1.00 of volatility."""
    price: float
    delta: float
    gamma: float
    theta: float
    vega: float

    @property
    def theta_per_day(self) -> float:
        """Theta spread over one calendar day."""
        return self.theta / DAYS_PER_YEAR


def norm_cdf(x: float) -> float:
    """Standard normal cumulative distribution function."""
    return 0.5 * (1.0 + erf(x / sqrt(2.0)))


def norm_pdf(x: float) -> float:
    return exp(-0.5 * x * x) / sqrt(2.0 * pi)


def _check_inputs(spot: float, strike: float, t_years: float) -> None:
    if not (spot > 0 and strike > 0):
        raise OutOfBoundsError(f"spot and strike must be positive (spot={spot}, strike={strike})")
    if not t_years > 0:
        raise OutOfBoundsError(f"time to expiry must be positive (t={t_years})")


def _d1_d2(spot: float, strike: float, t_years: float, sigma: float, r: float, q: float) -> Tuple[float, float]:
    sig_sqrt_t = sigma * sqrt(t_years)
    d1 = (log(spot / strike) + (r - q + 0.5 * sigma * sigma) * t_years) / sig_sqrt_t
    return d1, d1 - sig_sqrt_t


def no_arbitrage_bounds(
    spot: float,
    strike: float,
    t_years: float,
    r: float,
    q: float,
    is_put: bool,
) -> Tuple[float, float]:
    """
    (lower, upper) price bounds. A quote must lie strictly inside them to
    have a positive, finite implied volatility.
    """
    _check_inputs(spot, strike, t_years)
    fwd_spot = spot * exp(-q * t_years)
    pv_strike = strike * exp(-r * t_years)
    if is_put:
        return max(pv_strike - fwd_spot, 0.0), pv_strike
    return max(fwd_spot - pv_strike, 0.0), fwd_spot


def black_scholes_price(
    spot: float,
    strike: float,
    t_years: float,
    volatility: float,
    r: float = 0.0,
    q: float = 0.0,
    is_put: bool = False,
) -> float:
    """
    European option price. A zero volatility returns the discounted intrinsic
    value (the lower no-arbitrage bound).
    """
    _check_inputs(spot, strike, t_years)
    fwd_spot = spot * exp(-q * t_years)
    pv_strike = strike * exp(-r * t_years)
    if volatility <= 0:
        return max(pv_strike - fwd_spot, 0.0) if is_put else max(fwd_spot - pv_strike, 0.0)
    d1, d2 = _d1_d2(spot, strike, t_years, volatility, r, q)
    if is_put:
        return pv_strike * norm_cdf(-d2) - fwd_spot * norm_cdf(-d1)
    return fwd_spot * norm_cdf(d1) - pv_strike * norm_cdf(d2)


def evaluate_greeks(
    spot: float,
    strike: float,
    t_years: float,
    volatility: float,
    r: float = 0.0,
    q: float = 0.0,
    is_put: bool = False,
) -> GreeksResult:
    """
    Closed-form BSM price and Greeks.

    delta: dV/dS; gamma: d2V/dS2; vega: dV/dsigma;
    theta: -dV/dT with T in years (divide by 365 for the daily figure, see `theta_per_day`).
    """
    _check_inputs(spot, strike, t_years)
    if not volatility > 0:
        raise OutOfBoundsError(f"volatility must be positive (sigma={volatility})")
    d1, d2 = _d1_d2(spot, strike, t_years, volatility, r, q)
    sqrt_t = sqrt(t_years)
    disc_q = exp(-q * t_years)
    disc_r = exp(-r * t_years)
    pdf_d1 = norm_pdf(d1)

    gamma = disc_q * pdf_d1 / (spot * volatility * sqrt_t)
    vega = spot * disc_q * pdf_d1 * sqrt_t
    decay = -spot * disc_q * pdf_d1 * volatility / (2.0 * sqrt_t)

    if is_put:
        price = strike * disc_r * norm_cdf(-d2) - spot * disc_q * norm_cdf(-d1)
        delta = -disc_q * norm_cdf(-d1)
        theta = decay + r * strike * disc_r * norm_cdf(-d2) - q * spot * disc_q * norm_cdf(-d1)
    else:
        price = spot * disc_q * norm_cdf(d1) - strike * disc_r * norm_cdf(d2)
        delta = disc_q * norm_cdf(d1)
        theta = decay - r * strike * disc_r * norm_cdf(d2) + q * spot * disc_q * norm_cdf(d1)

    return GreeksResult(price=price, delta=delta, gamma=gamma, theta=theta, vega=vega)


def _vega(spot: float, strike: float, t_years: float, sigma: float, r: float, q: float) -> float:
    d1, _ = _d1_d2(spot, strike, t_years, sigma, r, q)
    return spot * exp(-q * t_years) * norm_pdf(d1) * sqrt(t_years)


def initial_volatility_estimate(
    spot: float,
    strike: float,
    t_years: float,
    r: float,
    q: float,
    market_price: float,
    is_put: bool,
) -> float:
    """
    Corrado-Miller closed-form approximation, falling back to
    Brenner-Subrahmanyam when the discriminant is unusable.
    """
    fwd_spot = spot * exp(-q * t_years)
    pv_strike = strike * exp(-r * t_years)
    # Work with the call price; put-call parity converts a put quote.
    call = market_price + fwd_spot - pv_strike if is_put else market_price
    half_moneyness = (fwd_spot - pv_strike) / 2.0
    centered = call - half_moneyness
    disc = centered * centered - (fwd_spot - pv_strike) ** 2 / pi
    scale = sqrt(2.0 * pi / t_years) / (fwd_spot + pv_strike)
    estimate = scale * (centered + sqrt(max(disc, 0.0)))
    if not isfinite(estimate) or estimate <= MIN_VOLATILITY:
        estimate = sqrt(2.0 * pi / t_years) * call / fwd_spot
    return min(max(estimate, 0.01), 5.0)


def solve_implied_volatility(
    spot: float,
    strike: float,
    t_years: float,
    r: float,
    q: float,
    market_price: float,
    is_put: bool = False,
    tolerance: float = 1e-6,
    max_iterations: int = 100,
    strict: bool = False,
) -> ImpliedVolResult:
    """
    Volatility that reproduces `market_price` to within `tolerance` (price units).

    Raises OutOfBoundsError for quotes outside the open no-arbitrage interval or T <= 0.
    When the iteration budget runs out the best estimate is returned with
    converged=False, or NumericNonConvergenceError is raised if `strict`.
    """
    if not isfinite(market_price):
        raise OutOfBoundsError(f"market price is not finite ({market_price})")
    lower, upper = no_arbitrage_bounds(spot, strike, t_years, r, q, is_put)
    if not lower < market_price < upper:
        raise OutOfBoundsError(
            f"price {market_price:.6f} outside no-arbitrage bounds ({lower:.6f}, {upper:.6f})"
        )

    def price_at(sigma: float) -> float:
        return black_scholes_price(spot, strike, t_years, sigma, r, q, is_put)

    # Bracket: price is increasing in sigma, price(0) = lower < market_price < upper = price(inf).
    lo, hi = MIN_VOLATILITY, 5.0
    while price_at(hi) < market_price and hi < MAX_VOLATILITY:
        hi = min(hi * 2.0, MAX_VOLATILITY)

    sigma = min(max(initial_volatility_estimate(spot, strike, t_years, r, q, market_price, is_put), lo), hi)
    best_sigma, best_err = sigma, float("inf")
    for iteration in range(1, max_iterations + 1):
        diff = price_at(sigma) - market_price
        if abs(diff) < best_err:
            best_sigma, best_err = sigma, abs(diff)
        if abs(diff) < tolerance:
            return ImpliedVolResult(price=price_at(sigma), volatility=sigma, converged=True, iterations=iteration)
        if diff > 0:
            hi = sigma
        else:
            lo = sigma
        vega = _vega(spot, strike, t_years, sigma, r, q)
        step_ok = vega > 1e-12
        if step_ok:
            candidate = sigma - diff / vega
            step_ok = lo < candidate < hi
        # Newton step when it stays inside the bracket, bisection otherwise.
        sigma = candidate if step_ok else 0.5 * (lo + hi)

    result = ImpliedVolResult(price=price_at(best_sigma), volatility=best_sigma, converged=False, iterations=max_iterations)
    if strict:
        raise NumericNonConvergenceError(
            f"implied volatility did not converge in {max_iterations} iterations (error {best_err:.3g})",
            result,
        )
    logger.warning(
        "Implied volatility not converged after %d iterations: sigma=%.6f error=%.3g",
        max_iterations, best_sigma, best_err,
    )
    return result
