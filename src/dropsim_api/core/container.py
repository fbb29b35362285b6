from __future__ import annotations

import logging
from typing import Optional

from dropsim_core.collaborators import RecordingReporter, StaticBudget, StaticCatalog, demo_catalog
from dropsim_core.config import Settings
from dropsim_core.http_collaborators import DashboardApiClient
from dropsim_core.persistence import JsonFileStateStore
from dropsim_core.services.seasonality import CatalogSeasonalityProvider
from dropsim_core.stepper import DayStepper
from dropsim_events.bus import InMemoryEventBus

logger = logging.getLogger(__name__)


class AppContainer:
    """
    Owns the long-lived objects behind the dashboard API: one event bus, one
    Day Stepper for the configured session and, when a dashboard base URL is
    configured, the HTTP client used for every collaborator.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.event_bus = InMemoryEventBus()
        self.api_client: Optional[DashboardApiClient] = None
        self.stepper: Optional[DayStepper] = None

    async def start(self) -> DayStepper:
        settings = self.settings
        session_id = settings.session_id
        if settings.collaborators.base_url:
            client = DashboardApiClient.from_settings(settings.collaborators)
            self.api_client = client
            logger.info("Using dashboard API at %s", client.base_url)
            self.stepper = await DayStepper.load(
                session_id,
                catalog=client,
                store=client,
                settings=settings,
                budget=client,
                seasonality=client,
                reporter=client,
                event_bus=self.event_bus,
            )
        else:
            catalog = StaticCatalog(demo_catalog())
            logger.info("No dashboard API configured; serving the demo catalog")
            self.stepper = await DayStepper.load(
                session_id,
                catalog=catalog,
                store=JsonFileStateStore(settings.persistence.snapshot_dir, session_id),
                settings=settings,
                budget=StaticBudget(),
                seasonality=CatalogSeasonalityProvider(catalog.snapshot),
                reporter=RecordingReporter(),
                event_bus=self.event_bus,
            )
        await self.event_bus.start()
        return self.stepper

    async def stop(self) -> None:
        if self.stepper is not None:
            await self.stepper.close()
        await self.event_bus.stop()
        if self.api_client is not None:
            await self.api_client.aclose()
