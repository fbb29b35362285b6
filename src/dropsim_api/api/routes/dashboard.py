from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from dropsim_api.api.dependencies import get_stepper
from dropsim_core.config import ALLOWED_SPEEDS
from dropsim_core.models.state import BusinessState
from dropsim_core.stepper import DayStepper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


class StepRequest(BaseModel):
    override_inventory: bool = Field(
        False, description="Keep simulating even when inventory is empty"
    )

    model_config = ConfigDict(json_schema_extra={"example": {"override_inventory": False}})


class AutoRunRequest(BaseModel):
    speed: Optional[int] = Field(None, description="Speed multiplier: 1, 5 or 10")

    model_config = ConfigDict(json_schema_extra={"example": {"speed": 5}})

    @field_validator("speed")
    @classmethod
    def _check_speed(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in ALLOWED_SPEEDS:
            raise ValueError(f"speed must be one of {list(ALLOWED_SPEEDS)}")
        return v


class BusinessStateOut(BaseModel):
    revenue: float
    expenses: float
    profit: float
    orders: int
    inventory: int
    marketing: float

    @classmethod
    def from_state(cls, state: BusinessState) -> BusinessStateOut:
        return cls(
            revenue=state.revenue.to_float(),
            expenses=state.expenses.to_float(),
            profit=state.profit.to_float(),
            orders=state.orders,
            inventory=state.inventory,
            marketing=state.marketing.to_float(),
        )


class DashboardStateOut(BaseModel):
    session_id: str
    day: int
    state: BusinessStateOut
    metrics: Dict[str, float]
    current_event: Optional[Dict[str, Any]] = None
    profit_history: List[float] = Field(default_factory=list)
    stepper_state: str
    auto_running: bool
    speed: int
    sync_status: str


class StepOut(BaseModel):
    day: int
    state: BusinessStateOut
    metrics: Dict[str, float]
    event: Optional[Dict[str, Any]] = None
    mode: str
    degraded: List[str] = Field(default_factory=list)


class AutoRunOut(BaseModel):
    auto_running: bool
    speed: int
    interval_seconds: float


def _dashboard_state(stepper: DayStepper) -> DashboardStateOut:
    session = stepper.session
    return DashboardStateOut(
        session_id=session.session_id,
        day=session.day,
        state=BusinessStateOut.from_state(session.state),
        metrics=session.metrics.to_dict(),
        current_event=session.current_event.to_dict() if session.current_event else None,
        profit_history=[p.to_float() for p in session.history],
        stepper_state=stepper.state.value,
        auto_running=stepper.is_auto_running,
        speed=stepper.speed,
        sync_status=stepper.sync_status.value,
    )


def _auto_run(stepper: DayStepper) -> AutoRunOut:
    return AutoRunOut(
        auto_running=stepper.is_auto_running,
        speed=stepper.speed,
        interval_seconds=stepper.interval_seconds,
    )


@router.get("/state", response_model=DashboardStateOut)
async def get_state(stepper: DayStepper = Depends(get_stepper)) -> DashboardStateOut:
    return _dashboard_state(stepper)


@router.post("/step", response_model=StepOut)
async def step_day(
    payload: Optional[StepRequest] = None,
    stepper: DayStepper = Depends(get_stepper),
) -> StepOut:
    payload = payload or StepRequest()
    result = await stepper.step(override_inventory=payload.override_inventory)
    return StepOut(
        day=result.day,
        state=BusinessStateOut.from_state(result.state),
        metrics=result.metrics.to_dict(),
        event=result.event.to_dict() if result.event else None,
        mode=result.mode,
        degraded=list(result.degraded),
    )


@router.post("/auto-run", response_model=AutoRunOut, status_code=status.HTTP_202_ACCEPTED)
async def start_auto_run(
    payload: Optional[AutoRunRequest] = None,
    stepper: DayStepper = Depends(get_stepper),
) -> AutoRunOut:
    payload = payload or AutoRunRequest()
    await stepper.start_auto_run(payload.speed)
    return _auto_run(stepper)


@router.delete("/auto-run", response_model=AutoRunOut)
async def stop_auto_run(stepper: DayStepper = Depends(get_stepper)) -> AutoRunOut:
    await stepper.stop_auto_run()
    return _auto_run(stepper)


@router.post("/restock", response_model=BusinessStateOut)
async def restock(stepper: DayStepper = Depends(get_stepper)) -> BusinessStateOut:
    return BusinessStateOut.from_state(await stepper.restock())


@router.post("/marketing", response_model=BusinessStateOut)
async def increase_marketing(stepper: DayStepper = Depends(get_stepper)) -> BusinessStateOut:
    return BusinessStateOut.from_state(await stepper.increase_marketing())
