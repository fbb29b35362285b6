"""
Dependency wiring for the dashboard routes.
The container (and its Day Stepper) is created by the app lifespan.
"""

from fastapi import HTTPException, Request, status

from dropsim_api.core.container import AppContainer
from dropsim_core.stepper import DayStepper


def get_container(request: Request) -> AppContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Simulation is not initialized",
        )
    return container


def get_stepper(request: Request) -> DayStepper:
    stepper = get_container(request).stepper
    if stepper is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Simulation is not initialized",
        )
    return stepper


__all__ = ["get_container", "get_stepper"]
