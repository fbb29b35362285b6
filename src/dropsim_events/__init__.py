"""dropsim_events: event types and the in-memory bus used by the Day Stepper."""

from __future__ import annotations

from .base import BaseEvent as BaseEvent
from .bus import EventBus as EventBus
from .bus import InMemoryEventBus as InMemoryEventBus
from .simulation import DayCompleted as DayCompleted
from .simulation import LearnerActionApplied as LearnerActionApplied
from .simulation import MarketEventTriggered as MarketEventTriggered
from .simulation import ProductPerformanceReported as ProductPerformanceReported
from .simulation import SyncStatusChanged as SyncStatusChanged

__all__ = [
    "BaseEvent",
    "DayCompleted",
    "EventBus",
    "InMemoryEventBus",
    "LearnerActionApplied",
    "MarketEventTriggered",
    "ProductPerformanceReported",
    "SyncStatusChanged",
]
