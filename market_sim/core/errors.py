"""
Exception taxonomy. Data-availability errors are recovered inside the day loop,
numeric errors are isolated per instrument, configuration errors are fatal at setup.
"""

from __future__ import annotations
from typing import Any


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class ConfigError(SimulatorError, ValueError):
    """Invalid simulation settings. Raised before the day loop starts."""


class InvalidRangeError(ConfigError):
    """Date range with end before start."""


class DataUnavailableError(SimulatorError):
    """No bar for an instrument on the requested date."""

    def __init__(self, symbol: str, message: str = ""):
        self.symbol = symbol
        super().__init__(message or f"{symbol}: no data")


class InsufficientDataError(SimulatorError):
    """Not enough history for a lookback, or no price to fill an order."""

    def __init__(self, symbol: str, message: str = ""):
        self.symbol = symbol
        super().__init__(message or f"{symbol}: insufficient data")


class OutOfBoundsError(SimulatorError, ValueError):
    """Option quote outside the no-arbitrage bounds, or degenerate inputs."""


class NumericNonConvergenceError(SimulatorError):
    """Root finder ran out of iterations. `result` holds the best estimate."""

    def __init__(self, message: str, result: Any = None):
        self.result = result
        super().__init__(message)
