"""
Load configuration from config.yaml and .env. Environment variables override YAML.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: Any = "") -> str:
        value = os.getenv(key)
        if value is None:
            return "" if default is None else str(default)
        return value.strip()

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    simulation = data.get("simulation", {})
    options = data.get("options", {})
    strategy = data.get("strategy", {})
    logging_cfg = data.get("logging", {})

    assets = env("ASSETS", ",".join(strategy.get("assets", [])))

    return Config(
        # Simulation
        start_date=env("START_DATE", simulation.get("start_date")) or None,
        end_date=env("END_DATE", simulation.get("end_date")) or None,
        warmup_start_date=env("WARMUP_START_DATE", simulation.get("warmup_start_date")) or None,
        initial_capital=env_float("INITIAL_CAPITAL", simulation.get("initial_capital", 100000.0)),
        commission_per_share=env_float("COMMISSION_PER_SHARE", simulation.get("commission_per_share", 0.0)),
        fill_policy=env("FILL_POLICY", simulation.get("fill_policy", "current_bar_close")),
        equity_scale=float(simulation.get("equity_scale", 10.0)),
        data_dir=Path(env("DATA_DIR", simulation.get("data_dir", "data"))),
        # Option analytics
        risk_free_rate=env_float("RISK_FREE_RATE", options.get("risk_free_rate", 0.0)),
        dividend_yield=env_float("DIVIDEND_YIELD", options.get("dividend_yield", 0.0)),
        compute_option_analytics=env_bool("COMPUTE_OPTION_ANALYTICS", options.get("compute_analytics", False)),
        # Strategy
        assets=[a.strip().upper() for a in assets.split(",") if a.strip()],
        num_picks=int(strategy.get("num_picks", 1)),
        lookback_days=int(strategy.get("lookback_days", 63)),
        cash_filter=strategy.get("cash_filter"),
        benchmark=strategy.get("benchmark"),
        min_momentum=strategy.get("min_momentum"),
        hedge_assets=[str(a).upper() for a in strategy.get("hedge_assets", []) or []],
        hedge_weight=float(strategy.get("hedge_weight", 0.0)),
        hedge_picks=int(strategy.get("hedge_picks", 1)),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "market_sim.log"),
        json_logs=bool(logging_cfg.get("json", False)),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "start_date", "end_date", "warmup_start_date", "initial_capital", "commission_per_share",
        "fill_policy", "equity_scale", "data_dir",
        "risk_free_rate", "dividend_yield", "compute_option_analytics",
        "assets", "num_picks", "lookback_days", "cash_filter", "benchmark",
        "min_momentum", "hedge_assets", "hedge_weight", "hedge_picks",
        "log_level", "log_dir", "log_file", "json_logs",
    )

    def __init__(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        warmup_start_date: Optional[str] = None,
        initial_capital: float = 100000.0,
        commission_per_share: float = 0.0,
        fill_policy: str = "current_bar_close",
        equity_scale: float = 10.0,
        data_dir: Path = None,
        risk_free_rate: float = 0.0,
        dividend_yield: float = 0.0,
        compute_option_analytics: bool = False,
        assets: Optional[List[str]] = None,
        num_picks: int = 1,
        lookback_days: int = 63,
        cash_filter: Optional[str] = None,
        benchmark: Optional[str] = None,
        min_momentum: Optional[float] = None,
        hedge_assets: Optional[List[str]] = None,
        hedge_weight: float = 0.0,
        hedge_picks: int = 1,
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "market_sim.log",
        json_logs: bool = False,
    ):
        self.start_date = start_date
        self.end_date = end_date
        self.warmup_start_date = warmup_start_date
        self.initial_capital = initial_capital
        self.commission_per_share = commission_per_share
        self.fill_policy = fill_policy
        self.equity_scale = equity_scale
        self.data_dir = Path(data_dir) if data_dir else Path("data")
        self.risk_free_rate = risk_free_rate
        self.dividend_yield = dividend_yield
        self.compute_option_analytics = compute_option_analytics
        self.assets = list(assets or [])
        self.num_picks = num_picks
        self.lookback_days = lookback_days
        self.cash_filter = cash_filter.upper() if cash_filter else None
        self.benchmark = benchmark.upper() if benchmark else None
        self.min_momentum = float(min_momentum) if min_momentum is not None else None
        self.hedge_assets = list(hedge_assets or [])
        self.hedge_weight = hedge_weight
        self.hedge_picks = hedge_picks
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
        self.json_logs = json_logs
