"""
Base event shared by everything published on the simulation event bus.

Concrete events are dataclasses that carry a unique ``event_id`` and a UTC
``timestamp`` and implement ``to_summary_dict`` for logging and recording.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


def _new_event_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(kw_only=True)
class BaseEvent(ABC):
    """
    Abstract base class for simulation events.

    Attributes:
        event_id (str): Unique identifier of this event instance.
        timestamp (datetime): When the event was generated (UTC).
    """

    event_id: str = field(default_factory=_new_event_id)
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if not self.event_id:
            raise ValueError("Event ID cannot be empty")
        if not isinstance(self.timestamp, datetime):
            raise TypeError("Timestamp must be a datetime object")

    @abstractmethod
    def to_summary_dict(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable summary of the event.

        Money values are rendered as strings and datetimes as ISO-8601.
        """
        raise NotImplementedError("Subclasses must implement to_summary_dict")
