"""Core: config, types, errors, logging."""

from market_sim.core.config import load_config, Config
from market_sim.core.types import Bar, OptionBar, FillPolicy, OrderRecord, EquityRecord, to_date
from market_sim.core.errors import (
    SimulatorError,
    ConfigError,
    InvalidRangeError,
    DataUnavailableError,
    InsufficientDataError,
    OutOfBoundsError,
    NumericNonConvergenceError,
)
from market_sim.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "Bar",
    "OptionBar",
    "FillPolicy",
    "OrderRecord",
    "EquityRecord",
    "to_date",
    "SimulatorError",
    "ConfigError",
    "InvalidRangeError",
    "DataUnavailableError",
    "InsufficientDataError",
    "OutOfBoundsError",
    "NumericNonConvergenceError",
    "setup_logging",
]
