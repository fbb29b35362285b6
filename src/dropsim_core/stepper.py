"""
Day Stepper: the asynchronous shell around ``DayEngine``.

Responsibilities:
- gather collaborator inputs (catalog, budget, seasonality) and degrade when
  budget or seasonality are unavailable
- serialize steps through an explicit Idle/Stepping state; overlapping
  triggers are rejected, never queued
- run the pure day step and swap in the new session value
- schedule a debounced snapshot write and fire detached performance reports
  and bus events; none of these can undo a completed step
- optionally re-trigger the step every ``base_tick_seconds / speed`` seconds
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Coroutine, List, Optional, Sequence, Set, Tuple

from dropsim_core.collaborators import (
    BudgetProvider,
    CatalogProvider,
    PerformanceReporter,
    SeasonalityProvider,
)
from dropsim_core.config import ALLOWED_SPEEDS, Settings, get_settings
from dropsim_core.engine import DayEngine, DayInputs, DayOutcome
from dropsim_core.errors import (
    CollaboratorUnavailable,
    EmptyCatalogError,
    PersistenceFailure,
    StepRejected,
    ValidationError,
)
from dropsim_core.logging import session_adapter
from dropsim_core.models.market import BudgetAllocation, SeasonalityFactor
from dropsim_core.models.product import Product
from dropsim_core.models.state import BusinessState, FunnelMetrics, MarketEvent, SimulationSession
from dropsim_core.persistence import SaveResult, SnapshotSync, StateStore, SyncStatus
from dropsim_core.services.business_actions import increase_marketing, restock_inventory
from dropsim_core.services.metrics_drift import override_average_order_value
from dropsim_core.services.seasonality import CatalogSeasonalityProvider
from dropsim_events.bus import EventBus
from dropsim_events.simulation import (
    DayCompleted,
    LearnerActionApplied,
    MarketEventTriggered,
    ProductPerformanceReported,
    SyncStatusChanged,
)
from reproducibility.deterministic_rng import SimulationRNG

logger = logging.getLogger(__name__)

MAX_AUTO_RUN_ERRORS = 5


class StepperState(str, Enum):
    IDLE = "idle"
    STEPPING = "stepping"


@dataclass(frozen=True)
class StepResult:
    """What a successful step hands back to the caller."""

    day: int
    state: BusinessState
    metrics: FunnelMetrics
    event: Optional[MarketEvent]
    mode: str
    degraded: Tuple[str, ...] = ()


class DayStepper:
    def __init__(
        self,
        session: SimulationSession,
        *,
        catalog: CatalogProvider,
        budget: Optional[BudgetProvider] = None,
        seasonality: Optional[SeasonalityProvider] = None,
        reporter: Optional[PerformanceReporter] = None,
        store: Optional[StateStore] = None,
        event_bus: Optional[EventBus] = None,
        rng: Optional[SimulationRNG] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session = session
        self.catalog = catalog
        self.budget = budget
        self.seasonality = seasonality
        self.reporter = reporter
        self.event_bus = event_bus
        self.engine = DayEngine(self.settings.simulation)
        self.rng = rng or SimulationRNG.from_seed(self.settings.simulation.master_seed)

        self._state = StepperState.IDLE
        self._catalog_cache: Optional[List[Product]] = None
        self._background: Set[asyncio.Task] = set()
        self._auto_task: Optional[asyncio.Task] = None
        self._speed = self.settings.simulation.default_speed
        self._log = session_adapter(logger, session.session_id)

        self.sync: Optional[SnapshotSync] = None
        if store is not None:
            self.sync = SnapshotSync(
                store,
                debounce_seconds=self.settings.persistence.debounce_seconds,
                max_retries=self.settings.persistence.max_retries,
                listener=self._on_sync_status,
            )

    @classmethod
    async def load(
        cls,
        session_id: str,
        *,
        catalog: CatalogProvider,
        store: Optional[StateStore] = None,
        settings: Optional[Settings] = None,
        **kwargs: Any,
    ) -> DayStepper:
        """
        Build a stepper from the stored snapshot, or from defaults when none exists.

        Loaded metrics are clamped into their ranges. When enabled, the average
        order value is reset from the catalog's mean selling price.
        """
        settings = settings or get_settings()
        try:
            snapshot = await store.load_state() if store is not None else None
        except PersistenceFailure as e:
            logger.error("Cannot load session %s: %s", session_id, e)
            raise
        if snapshot:
            try:
                session = SimulationSession.from_snapshot(session_id, snapshot)
            except (ValueError, TypeError, ArithmeticError, AttributeError) as e:
                logger.error("Snapshot for session %s is malformed: %s", session_id, e)
                raise PersistenceFailure(f"Malformed snapshot for session {session_id}: {e}") from e
            logger.info("Loaded session %s at day %d", session_id, session.day)
        else:
            session = SimulationSession.new(session_id, settings.simulation.starting_inventory)
            logger.info("Started new session %s", session_id)

        stepper = cls(session, catalog=catalog, store=store, settings=settings, **kwargs)
        metrics = stepper.engine.drift.clamp(session.metrics)
        if settings.simulation.override_average_order_value:
            try:
                products = await stepper._fetch_catalog()
            except ValidationError:
                products = []
            metrics = override_average_order_value(
                metrics, (p.selling_price.to_float() for p in products)
            )
        stepper._session = replace(session, metrics=metrics)
        return stepper

    # Introspection -----------------------------------------------------------

    @property
    def session(self) -> SimulationSession:
        return self._session

    @property
    def state(self) -> StepperState:
        return self._state

    @property
    def speed(self) -> int:
        return self._speed

    @property
    def interval_seconds(self) -> float:
        return self.settings.simulation.base_tick_seconds / self._speed

    @property
    def is_auto_running(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    @property
    def sync_status(self) -> SyncStatus:
        return self.sync.status if self.sync is not None else SyncStatus.IDLE

    def snapshot(self) -> dict:
        return self._session.to_snapshot()

    # Stepping ----------------------------------------------------------------

    async def step(self, *, override_inventory: bool = False) -> StepResult:
        """
        Simulate one day.

        Raises:
            StepRejected: another step is in flight, or inventory is empty and
                ``override_inventory`` was not given.
            ValidationError: the catalog is empty (or unreachable with nothing cached).
        """
        if self._state is StepperState.STEPPING:
            self._log.info("Step rejected: a step is already in progress")
            raise StepRejected("A simulated day is already in progress.", reason="busy")
        if self._session.state.inventory == 0 and not override_inventory:
            self._log.info("Step rejected: out of stock")
            raise StepRejected(
                "Inventory is empty; restock or override to keep simulating.",
                reason="out_of_stock",
            )

        self._state = StepperState.STEPPING
        try:
            products = await self._fetch_catalog()
            if not products:
                raise EmptyCatalogError()
            allocations, factors, degraded = await self._fetch_market_inputs()
            inputs = DayInputs.build(products, allocations, factors)
            outcome = self.engine.simulate_day(self._session, inputs, self.rng)
            self._session = outcome.session
        finally:
            self._state = StepperState.IDLE

        self._log.debug(
            "Day %d complete: profit=%s inventory=%d",
            outcome.session.day,
            outcome.session.state.profit,
            outcome.session.state.inventory,
        )
        await self._schedule_persist()
        self._spawn(self._after_step(outcome), name=f"after-step-{outcome.session.day}")
        return StepResult(
            day=outcome.session.day,
            state=outcome.session.state,
            metrics=outcome.session.metrics,
            event=outcome.event,
            mode=outcome.allocation.mode,
            degraded=degraded,
        )

    async def _fetch_catalog(self) -> List[Product]:
        try:
            products = list(await self.catalog.get_catalog())
        except CollaboratorUnavailable as e:
            if self._catalog_cache is None:
                raise ValidationError(f"Catalog unavailable and nothing cached: {e}") from e
            self._log.warning("Catalog unavailable, using last known catalog: %s", e)
            return list(self._catalog_cache)
        self._catalog_cache = products
        return products

    async def _fetch_market_inputs(
        self,
    ) -> Tuple[Sequence[BudgetAllocation], Sequence[SeasonalityFactor], Tuple[str, ...]]:
        """Budget or seasonality failure degrades the day to fallback with neutral factors."""
        allocations: Sequence[BudgetAllocation] = []
        factors: Sequence[SeasonalityFactor] = []
        degraded: List[str] = []
        if self.budget is not None:
            try:
                allocations = await self.budget.get_budget_allocations()
            except CollaboratorUnavailable as e:
                self._log.warning("Budget allocations unavailable, degrading: %s", e)
                degraded.append("budget")
        if self.seasonality is not None:
            try:
                factors = await self.seasonality.get_seasonality()
            except CollaboratorUnavailable as e:
                self._log.warning("Seasonality unavailable, degrading: %s", e)
                degraded.append("seasonality")
        if degraded:
            return [], [], tuple(degraded)
        return allocations, factors, ()

    async def _after_step(self, outcome: DayOutcome) -> None:
        session = outcome.session
        if outcome.event is not None:
            await self._publish(
                MarketEventTriggered(
                    session_id=session.session_id,
                    day=session.day,
                    title=outcome.event.title,
                    description=outcome.event.description,
                    sales_delta_pct=outcome.event.sales_delta_pct,
                    expense_delta_pct=outcome.event.expense_delta_pct,
                )
            )

        for financials in outcome.financials:
            if isinstance(self.seasonality, CatalogSeasonalityProvider):
                self.seasonality.record(
                    financials.product_id, financials.orders, financials.revenue.to_float()
                )
            delivered = await self._report(financials.to_report())
            await self._publish(
                ProductPerformanceReported(
                    session_id=session.session_id,
                    day=session.day,
                    product_id=financials.product_id,
                    orders=financials.orders,
                    revenue=financials.revenue,
                    profit=financials.profit,
                    delivered=delivered,
                )
            )

        await self._publish(
            DayCompleted(
                session_id=session.session_id,
                day=session.day,
                orders=outcome.totals.orders,
                revenue=outcome.totals.revenue,
                expenses=outcome.totals.expenses,
                cumulative_profit=session.state.profit,
                inventory=session.state.inventory,
                mode=outcome.allocation.mode,
                market_event=outcome.event.title if outcome.event else None,
            )
        )

    async def _report(self, report) -> bool:
        if self.reporter is None:
            return False
        try:
            await self.reporter.report_product_performance(report)
        except Exception as e:
            self._log.warning("Performance report for %s failed: %s", report.product_id, e)
            return False
        return True

    # Learner actions -----------------------------------------------------------

    async def restock(self) -> BusinessState:
        actions = self.settings.actions
        return await self._apply_action(
            "restock",
            restock_inventory,
            {"quantity": actions.restock_quantity, "unit_cost": actions.restock_unit_cost},
        )

    async def increase_marketing(self) -> BusinessState:
        return await self._apply_action(
            "increase_marketing",
            increase_marketing,
            {"amount": self.settings.actions.marketing_increment},
        )

    async def _apply_action(self, name: str, action, details: dict) -> BusinessState:
        if self._state is StepperState.STEPPING:
            raise StepRejected("Wait for the current day to finish.", reason="busy")
        before = self._session.state
        after = action(before, self.settings.actions)
        self._session = self._session.with_state(after)
        self._log.info("Applied %s", name)
        await self._schedule_persist()
        self._spawn(
            self._publish(
                LearnerActionApplied(
                    session_id=self._session.session_id,
                    action=name,
                    cost=after.expenses - before.expenses,
                    details=details,
                )
            ),
            name=f"action-{name}",
        )
        return after

    # Auto-run ----------------------------------------------------------------

    async def start_auto_run(self, speed: Optional[int] = None) -> None:
        """Start (or re-speed) the timer that steps every ``interval_seconds``."""
        if speed is not None:
            if speed not in ALLOWED_SPEEDS:
                raise ValueError(f"speed must be one of {ALLOWED_SPEEDS}, got {speed}")
            self._speed = speed
        if self.is_auto_running:
            return
        self._auto_task = asyncio.create_task(self._auto_loop(), name="DayStepper.auto_run")
        self._log.info("Auto-run started at %dx", self._speed)

    async def stop_auto_run(self) -> None:
        """Cancel the pending timer; no step fires after this returns."""
        task = self._auto_task
        self._auto_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._log.info("Auto-run stopped")

    async def _auto_loop(self) -> None:
        error_count = 0
        while True:
            await asyncio.sleep(self.interval_seconds)
            if self._session.state.inventory == 0:
                self._log.info("Auto-run paused: inventory is empty")
                return
            try:
                await self.step()
                error_count = 0
            except StepRejected as e:
                self._log.info("Auto-run tick skipped: %s", e)
            except ValidationError as e:
                self._log.warning("Auto-run stopped: %s", e)
                return
            except Exception as e:
                error_count += 1
                self._log.error(
                    "Auto-run step failed (%d/%d): %s",
                    error_count,
                    MAX_AUTO_RUN_ERRORS,
                    e,
                    exc_info=True,
                )
                if error_count >= MAX_AUTO_RUN_ERRORS:
                    self._log.critical("Too many consecutive auto-run errors; stopping")
                    return

    # Background work -----------------------------------------------------------

    async def _schedule_persist(self) -> None:
        if self.sync is not None:
            await self.sync.schedule(self._session.to_snapshot())

    async def _on_sync_status(self, status: SyncStatus, result: Optional[SaveResult]) -> None:
        await self._publish(
            SyncStatusChanged(
                session_id=self._session.session_id,
                status=status.value,
                day=result.day if result else None,
                attempts=result.attempts if result else 0,
                error=result.error if result else None,
            )
        )

    async def _publish(self, event) -> None:
        if self.event_bus is None:
            return
        try:
            await self.event_bus.publish(event)
        except Exception as e:
            self._log.warning("Failed to publish %s: %s", type(event).__name__, e)

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._log.warning("Background task %s failed: %s", task.get_name(), exc)

    async def drain(self) -> None:
        """Wait for detached reports, events and the debounced write to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        if self.sync is not None:
            await self.sync.wait_idle()

    async def close(self) -> None:
        """Stop auto-run, flush the newest snapshot and settle background work."""
        await self.stop_auto_run()
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        if self.sync is not None:
            await self.sync.flush()
            await self.sync.close()


__all__ = ["DayStepper", "StepResult", "StepperState"]
