"""
Event bus for simulation notifications.

The Day Stepper publishes ``DayCompleted``, ``MarketEventTriggered``,
``ProductPerformanceReported``, ``LearnerActionApplied`` and
``SyncStatusChanged`` here. Publishing never waits for subscribers: events
are queued and a single dispatcher task fans each one out to its handlers,
so a slow or failing subscriber cannot hold up a simulated day.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Protocol, Set, Union

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None]]
Selector = Union[type, str]

DEFAULT_RECORDING_MAX = 5000
HANDLER_GRACE_SECONDS = 0.25

_SENSITIVE_KEY = re.compile(r"password|api_key|token|secret|authorization", re.IGNORECASE)
REDACTED = "[redacted]"


class EventBus(Protocol):
    """What the Day Stepper and the API container need from a bus."""

    async def publish(self, event: Any) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


@dataclass(frozen=True)
class Subscription:
    """Handle returned by ``subscribe``; pass it back to ``unsubscribe``."""

    selector: Selector
    handler: Handler = field(compare=False)
    token: int = 0

    def matches(self, event: Any) -> bool:
        if isinstance(self.selector, str):
            return type(event).__name__ == self.selector
        return isinstance(event, self.selector)


class _Queued(NamedTuple):
    event: Any
    name: str
    published_at: str


_SHUTDOWN = _Queued(None, "", "")


def recording_limit() -> int:
    """Maximum number of recorded summaries, from ``EVENT_RECORDING_MAX``."""
    raw = os.getenv("EVENT_RECORDING_MAX", "").strip()
    if not raw:
        return DEFAULT_RECORDING_MAX
    try:
        return max(0, int(raw))
    except ValueError:
        logger.warning("Ignoring EVENT_RECORDING_MAX=%r, keeping %d", raw, DEFAULT_RECORDING_MAX)
        return DEFAULT_RECORDING_MAX


def redact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Mask values whose key looks like a credential, at any nesting depth."""
    masked: Dict[str, Any] = {}
    for key, value in data.items():
        if _SENSITIVE_KEY.search(key):
            masked[key] = REDACTED
        elif isinstance(value, dict):
            masked[key] = redact(value)
        else:
            masked[key] = value
    return masked


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return aware.isoformat()
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


def summarize(event: Any) -> Dict[str, Any]:
    summary = getattr(event, "to_summary_dict", None)
    if callable(summary):
        return _plain(summary())
    return {"repr": repr(event)}


class InMemoryEventBus:
    """
    Single-process bus backed by an ``asyncio.Queue``.

    Subscribers register against an event class (``isinstance`` match) or a
    class name. Plain callables are accepted and run inline on the loop.
    When recording is on, each dispatched event is kept as
    ``{"event_type", "timestamp", "data"}`` with credential-like keys masked,
    up to ``EVENT_RECORDING_MAX`` entries.
    """

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []
        self._next_token = 0
        self._queue: Optional[asyncio.Queue] = None
        self._dispatcher: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

        self._recording = False
        self._records: List[Dict[str, Any]] = []
        self._record_limit = recording_limit()
        self._truncated = False

        self._published = 0
        self._dispatched = 0

    @property
    def running(self) -> bool:
        return self._dispatcher is not None

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._dispatcher = asyncio.create_task(self._dispatch_loop(), name="dropsim-event-dispatch")
        logger.debug("Event bus started")

    async def stop(self) -> None:
        """Dispatch everything already queued, then wait briefly for handlers."""
        if not self.running:
            return
        assert self._queue is not None and self._dispatcher is not None
        await self._queue.put(_SHUTDOWN)
        await self._dispatcher

        if self._inflight:
            _, late = await asyncio.wait(set(self._inflight), timeout=HANDLER_GRACE_SECONDS)
            for task in late:
                task.cancel()
            await asyncio.gather(*late, return_exceptions=True)

        self._queue = None
        self._dispatcher = None
        logger.debug("Event bus stopped after %d event(s)", self._dispatched)

    async def publish(self, event: Any) -> None:
        if not self.running:
            await self.start()
        assert self._queue is not None
        item = _Queued(event, type(event).__name__, datetime.now(timezone.utc).isoformat())
        self._published += 1
        await self._queue.put(item)

    async def subscribe(self, selector: Selector, handler: Callable[[Any], Any]) -> Subscription:
        if not isinstance(selector, (type, str)):
            raise TypeError(f"Subscribe with an event class or class name, not {type(selector)!r}")
        if not callable(handler):
            raise TypeError("handler must be callable")
        self._next_token += 1
        sub = Subscription(selector, _as_coroutine(handler), self._next_token)
        self._subscriptions.append(sub)
        return sub

    async def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.token != subscription.token]

    async def start_recording(self) -> None:
        self._recording = True

    async def stop_recording(self) -> None:
        self._recording = False

    async def get_recorded_events(self) -> List[Dict[str, Any]]:
        return list(self._records)

    def clear_recorded_events(self) -> None:
        self._records = []
        self._truncated = False

    def get_stats(self) -> Dict[str, Any]:
        return {
            "started": self.running,
            "events_published": self._published,
            "events_processed": self._dispatched,
            "subscribers": len(self._subscriptions),
            "recording_truncated": self._truncated,
        }

    async def _dispatch_loop(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            if item is _SHUTDOWN:
                return
            self._dispatched += 1
            if self._recording:
                self._keep(item)
            handlers = {id(s.handler): s.handler for s in self._subscriptions if s.matches(item.event)}
            for handler in handlers.values():
                task = asyncio.create_task(self._deliver(handler, item))
                self._inflight.add(task)
                task.add_done_callback(self._inflight.discard)

    async def _deliver(self, handler: Handler, item: _Queued) -> None:
        try:
            await handler(item.event)
        except Exception:
            logger.exception("Subscriber failed while handling %s", item.name)

    def _keep(self, item: _Queued) -> None:
        if len(self._records) >= self._record_limit:
            self._truncated = True
            return
        self._records.append(
            {"event_type": item.name, "timestamp": item.published_at, "data": redact(summarize(item.event))}
        )


def _as_coroutine(handler: Callable[[Any], Any]) -> Handler:
    if inspect.iscoroutinefunction(handler):
        return handler

    async def call(event: Any) -> None:
        handler(event)

    return call


__all__ = ["EventBus", "InMemoryEventBus", "Subscription", "redact", "recording_limit", "summarize"]
