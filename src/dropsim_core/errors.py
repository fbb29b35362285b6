"""
Error taxonomy for the simulation engine.

Only ``ValidationError`` (empty catalog) aborts a simulated day. Collaborator and
persistence failures are raised by adapters and degraded by the Day Stepper.
"""

from __future__ import annotations


class SimulationError(Exception):
    """Base class for all simulation engine errors."""


class ValidationError(SimulationError):
    """Raised when a step precondition fails. The session is left untouched."""


class EmptyCatalogError(ValidationError):
    """Raised when a step is requested with no catalog products."""

    def __init__(self, message: str = "Add products to your catalog before simulating a day."):
        super().__init__(message)


class StepRejected(SimulationError):
    """Raised when a step trigger is refused by the stepper state machine."""

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class CollaboratorUnavailable(SimulationError):
    """Raised by collaborator adapters when a remote dependency cannot be reached."""

    def __init__(self, collaborator: str, message: str = ""):
        super().__init__(message or f"{collaborator} is unavailable")
        self.collaborator = collaborator


class PersistenceFailure(SimulationError):
    """Raised when a state snapshot cannot be saved or loaded."""
    pass


class InsufficientFunds(SimulationError):
    """Raised when a learner action costs more than the current profit."""

    def __init__(self, action: str, required, available):
        super().__init__(
            f"Insufficient funds for {action}: requires {required}, available {available}"
        )
        self.action = action
        self.required = required
        self.available = available


__all__ = [
    "SimulationError",
    "ValidationError",
    "EmptyCatalogError",
    "StepRejected",
    "CollaboratorUnavailable",
    "PersistenceFailure",
    "InsufficientFunds",
]
