"""Simulation engine: calendar-driven day loop with deterministic settlement."""

from market_sim.backtesting.engine import (
    SimulationEngine,
    SimulationResult,
    DayResult,
    EngineState,
    OptionAnalytics,
)

__all__ = ["SimulationEngine", "SimulationResult", "DayResult", "EngineState", "OptionAnalytics"]
