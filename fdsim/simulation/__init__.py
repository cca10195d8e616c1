"""Simulation execution: update groups, the async engine and progress events."""

from .engine import (
    ResolvedAttribute,
    SimulationSummary,
    Simulator,
    UpdateGroup,
    build_groups,
    run_simulation,
)
from .progress import SimulationProgress

__all__ = [
    "ResolvedAttribute",
    "SimulationSummary",
    "Simulator",
    "UpdateGroup",
    "build_groups",
    "run_simulation",
    "SimulationProgress",
]
