"""
dropsim_core: the day-step engine of the dropshipping business simulation.

The pure model lives in ``dropsim_core.engine``; ``dropsim_core.stepper`` wraps
it with collaborator I/O, auto-run and snapshot persistence.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .engine import DayEngine, DayInputs, DayOutcome, simulate_day
from .errors import (
    CollaboratorUnavailable,
    EmptyCatalogError,
    InsufficientFunds,
    PersistenceFailure,
    SimulationError,
    StepRejected,
    ValidationError,
)
from .stepper import DayStepper, StepResult, StepperState

__all__ = [
    "CollaboratorUnavailable",
    "DayEngine",
    "DayInputs",
    "DayOutcome",
    "DayStepper",
    "EmptyCatalogError",
    "InsufficientFunds",
    "PersistenceFailure",
    "SimulationError",
    "StepRejected",
    "StepResult",
    "StepperState",
    "ValidationError",
    "simulate_day",
]
