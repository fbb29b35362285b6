from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request

from dropsim_api import __version__
from dropsim_api.api.exception_handlers import add_exception_handlers
from dropsim_api.api.routes import dashboard as dashboard_routes
from dropsim_api.core.lifespan import lifespan
from dropsim_core.config import Settings, get_settings
from dropsim_core.logging import configure_logging

logger = logging.getLogger("dropsim_api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="dropsim Dashboard API",
        description="Drive a learner's dropshipping business simulation one day at a time.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    add_exception_handlers(app)
    app.include_router(dashboard_routes.router)

    @app.get("/health", tags=["Health"])
    async def health(request: Request):
        container = getattr(request.app.state, "container", None)
        stepper = container.stepper if container is not None else None
        started = getattr(request.app.state, "start_time", None)
        return {
            "status": "ok" if stepper is not None else "starting",
            "session_id": stepper.session.session_id if stepper is not None else None,
            "day": stepper.session.day if stepper is not None else None,
            "sync_status": stepper.sync_status.value if stepper is not None else None,
            "uptime_seconds": round(time.time() - started, 3) if started else 0.0,
        }

    logger.debug("dropsim API created for session %s", settings.session_id)
    return app
