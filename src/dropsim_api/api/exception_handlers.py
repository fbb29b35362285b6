from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from dropsim_core.errors import InsufficientFunds, StepRejected, ValidationError

logger = logging.getLogger(__name__)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "validation_error", "detail": str(exc)},
    )


async def _step_rejected(request: Request, exc: StepRejected) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "step_rejected", "reason": exc.reason, "detail": str(exc)},
    )


async def _insufficient_funds(request: Request, exc: InsufficientFunds) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        content={
            "error": "insufficient_funds",
            "action": exc.action,
            "required": str(exc.required),
            "available": str(exc.available),
            "detail": str(exc),
        },
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(StepRejected, _step_rejected)
    app.add_exception_handler(InsufficientFunds, _insufficient_funds)
