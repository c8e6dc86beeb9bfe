"""Execution: order model, sizing and the deterministic fill model."""

from market_sim.execution.base import ExecutionModel, PendingOrder
from market_sim.execution.simulated import SimulatedExecution
from market_sim.execution.sizing import round_shares, target_shares

__all__ = ["ExecutionModel", "PendingOrder", "SimulatedExecution", "round_shares", "target_shares"]
