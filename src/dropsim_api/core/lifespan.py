from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dropsim_core.config import get_settings

from .container import AppContainer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting dropsim dashboard API…")

    settings = getattr(app.state, "settings", None) or get_settings()
    container = AppContainer(settings)
    app.state.container = container
    app.state.start_time = time.time()

    stepper = await container.start()
    logger.info("Session %s ready at day %d", stepper.session.session_id, stepper.session.day)
    try:
        yield
    finally:
        logger.info("Shutting down dropsim dashboard API…")
        await container.stop()
