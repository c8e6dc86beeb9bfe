#!/usr/bin/env python3
"""
Market simulator CLI: backtest | greeks
Usage:
  python main.py backtest [--config config.yaml]
  python main.py greeks --spot 1921.42 --strike 1845 --days 15 --price 87.90 [--put]
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from market_sim.analytics.black_scholes import DAYS_PER_YEAR, evaluate_greeks, solve_implied_volatility
from market_sim.backtesting.engine import SimulationEngine
from market_sim.core.config import load_config
from market_sim.core.errors import SimulatorError
from market_sim.core.logger import setup_logging
from market_sim.data.loader import load_directory
from market_sim.strategies.momentum import MomentumRotationStrategy


def run_backtest(config_path: Path | None) -> int:
    """Run a momentum rotation over the configured asset menu."""
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file, config.json_logs)
    logger = logging.getLogger("market_sim")
    if not config.assets:
        logger.error("No assets configured. Set strategy.assets in config.yaml or ASSETS in .env")
        return 1
    if not config.start_date or not config.end_date:
        logger.error("START_DATE and END_DATE are required")
        return 1
    strategy = MomentumRotationStrategy(
        assets=config.assets,
        num_picks=config.num_picks,
        lookback_days=config.lookback_days,
        cash_filter=config.cash_filter,
        min_momentum=config.min_momentum,
        hedge_assets=config.hedge_assets,
        hedge_weight=config.hedge_weight,
        hedge_picks=config.hedge_picks,
    )
    symbols = list(strategy.required_symbols())
    if config.benchmark and config.benchmark not in symbols:
        symbols.append(config.benchmark)
    try:
        engine = SimulationEngine(
            strategy=strategy,
            start_date=config.start_date,
            end_date=config.end_date,
            warmup_start_date=config.warmup_start_date,
            initial_capital=config.initial_capital,
            commission_per_share=config.commission_per_share,
            fill_policy=config.fill_policy,
            equity_scale=config.equity_scale,
            risk_free_rate=config.risk_free_rate,
            dividend_yield=config.dividend_yield,
            compute_option_analytics=config.compute_option_analytics,
        )
        for data_source in load_directory(config.data_dir, symbols):
            engine.add_data_source(data_source, required=data_source.symbol != config.benchmark)
        result = engine.run()
    except SimulatorError as e:
        logger.error("Backtest failed: %s", e)
        return 1
    m = result.metrics
    if m:
        print("\n--- Backtest Results ---")
        print(f"Trading days: {m.trading_days}  Fills: {m.total_fills}  Commission: {m.total_commission:.2f}")
        print(f"Final NAV: {result.equity[-1].nav:.2f}" if result.equity else "Final NAV: n/a")
        print(f"Total return: {m.total_return_pct:.2f}%")
        print(f"CAGR: {m.cagr_pct:.2f}%")
        print(f"Volatility: {m.volatility_pct:.2f}%")
        print(f"Sharpe ratio: {m.sharpe_ratio:.2f}")
        print(f"Sortino ratio: {m.sortino_ratio:.2f}")
        print(f"Max drawdown: {m.max_drawdown_pct:.2f}%")
        benchmark = engine.find_instrument(config.benchmark) if config.benchmark else None
        if benchmark is not None and result.equity:
            curve = result.benchmark(benchmark.data_source).dropna()
            if not curve.empty:
                print(f"Benchmark {benchmark.symbol}: {curve.iloc[-1]:.4f} vs strategy {result.equity[-1].normalized:.4f} (normalized)")
                print(f"Benchmark return: {(curve.iloc[-1] / curve.iloc[0] - 1.0) * 100.0:.2f}%")
        table = result.monthly_returns()
        if not table.empty:
            print("\n--- Monthly Returns (%) ---")
            print(table.round(2).to_string())
    return 0


def run_greeks(args: argparse.Namespace) -> int:
    """Implied volatility and Greeks for a single option quote."""
    setup_logging("WARNING")
    t = args.days / DAYS_PER_YEAR
    try:
        iv = solve_implied_volatility(args.spot, args.strike, t, args.rate, args.dividend, args.price, args.put)
        g = evaluate_greeks(args.spot, args.strike, t, iv.volatility, args.rate, args.dividend, args.put)
    except SimulatorError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(f"Implied vol: {iv.volatility:.4f} ({'converged' if iv.converged else 'NOT converged'}, {iv.iterations} iterations)")
    print(f"Price: {g.price:.4f}")
    print(f"Delta: {g.delta:.4f}")
    print(f"Gamma: {g.gamma:.6f}")
    print(f"Theta: {g.theta:.2f} per year ({g.theta_per_day:.4f} per day)")
    print(f"Vega: {g.vega:.2f}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Market simulator CLI")
    sub = parser.add_subparsers(dest="mode", required=True)
    backtest = sub.add_parser("backtest", help="Run a historical simulation")
    backtest.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    greeks = sub.add_parser("greeks", help="Implied volatility and Greeks of one quote")
    greeks.add_argument("--spot", type=float, required=True)
    greeks.add_argument("--strike", type=float, required=True)
    greeks.add_argument("--days", type=float, required=True, help="Calendar days to expiration")
    greeks.add_argument("--price", type=float, required=True, help="Option mid price")
    greeks.add_argument("--rate", type=float, default=0.0, help="Risk-free rate")
    greeks.add_argument("--dividend", type=float, default=0.0, help="Dividend yield")
    greeks.add_argument("--put", action="store_true", help="Quote is a put")
    args = parser.parse_args()
    if args.mode == "backtest":
        return run_backtest(args.config)
    return run_greeks(args)


if __name__ == "__main__":
    exit(main())
