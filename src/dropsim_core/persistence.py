"""
Snapshot persistence for simulation sessions.

``StateStore`` is the load/save contract. ``SnapshotSync`` sits in front of a
store and turns a stream of in-memory mutations into debounced writes:

- a write happens ``debounce_seconds`` after the last mutation
- only the newest snapshot is written; older ones are dropped
- snapshots older than the last acknowledged day are ignored
- a failed write is retried once per debounce window, up to ``max_retries``
- ``status`` moves through idle -> pending -> saving -> synced | error | failed
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from dropsim_core.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Load/save contract for one session's snapshot."""

    async def load_state(self) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None when the session has never been saved."""
        ...

    async def save_state(self, snapshot: Dict[str, Any]) -> None:
        """Persist ``snapshot``; raise PersistenceFailure when it cannot be stored."""
        ...


class InMemoryStateStore:
    """
    Keeps snapshots in process memory.
    NOT FOR PRODUCTION USE - primarily for testing and the CLI.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._latest: Optional[Dict[str, Any]] = dict(initial) if initial else None
        self.saved: List[Dict[str, Any]] = []

    async def load_state(self) -> Optional[Dict[str, Any]]:
        return dict(self._latest) if self._latest is not None else None

    async def save_state(self, snapshot: Dict[str, Any]) -> None:
        self._latest = dict(snapshot)
        self.saved.append(dict(snapshot))
        logger.debug("Saved in-memory snapshot for day %s", snapshot.get("day"))


class JsonFileStateStore:
    """One JSON file per session under ``snapshot_dir``; writes replace the file atomically."""

    def __init__(self, snapshot_dir: os.PathLike | str, session_id: str):
        self.snapshot_dir = Path(snapshot_dir)
        self.session_id = session_id

    @property
    def path(self) -> Path:
        return self.snapshot_dir / f"{self.session_id}.json"

    async def load_state(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read)

    async def save_state(self, snapshot: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, snapshot)
        logger.debug("Saved snapshot for session %s at %s", self.session_id, self.path)

    def _read(self) -> Optional[Dict[str, Any]]:
        path = self.path
        if not path.is_file():
            logger.info("No snapshot found for session %s", self.session_id)
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Failed to load snapshot {path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceFailure(f"Snapshot {path} does not hold a JSON object")
        return data

    def _write(self, snapshot: Dict[str, Any]) -> None:
        path = self.path
        tmp = path.with_suffix(".json.tmp")
        try:
            self.snapshot_dir.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceFailure(f"Failed to save snapshot {path}: {e}") from e


class SyncStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    SYNCED = "synced"
    ERROR = "error"  # last write failed; a retry is scheduled
    FAILED = "failed"  # retries exhausted; waiting for the next mutation


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    day: Optional[int] = None
    attempts: int = 0
    error: Optional[str] = None


StatusListener = Callable[[SyncStatus, Optional[SaveResult]], Awaitable[None]]


def _snapshot_day(snapshot: Dict[str, Any]) -> int:
    return int(snapshot.get("day") or 0)


class SnapshotSync:
    def __init__(
        self,
        store: StateStore,
        *,
        debounce_seconds: float = 1.0,
        max_retries: int = 3,
        listener: Optional[StatusListener] = None,
    ) -> None:
        self.store = store
        self.debounce_seconds = debounce_seconds
        self.max_retries = max_retries
        self._listener = listener

        self._status = SyncStatus.IDLE
        self._pending: Optional[Dict[str, Any]] = None
        self._timer: Optional[asyncio.Task] = None
        self._saving = False
        self._failures = 0
        self.last_saved_day: Optional[int] = None
        self.last_result: Optional[SaveResult] = None

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    async def schedule(self, snapshot: Dict[str, Any]) -> bool:
        """
        Queue ``snapshot`` for the next debounced write.

        Returns False when the snapshot is older than what is already saved or queued.
        """
        day = _snapshot_day(snapshot)
        if self.last_saved_day is not None and day < self.last_saved_day:
            logger.debug("Ignoring stale snapshot for day %d (saved day %d)", day, self.last_saved_day)
            return False
        if self._pending is not None and day < _snapshot_day(self._pending):
            return False

        self._pending = dict(snapshot)
        self._failures = 0
        if not self._saving:
            self._arm()
        await self._set_status(SyncStatus.PENDING)
        return True

    async def flush(self) -> Optional[SaveResult]:
        """Write the pending snapshot now, skipping the debounce window."""
        if self._timer is not None and not self._timer.done() and not self._saving:
            self._timer.cancel()
        await self.wait_idle()
        if self._pending is None:
            return self.last_result
        return await self._save_pending()

    async def wait_idle(self) -> None:
        """Wait until no debounce window or write is outstanding."""
        while self._timer is not None and not self._timer.done():
            await asyncio.wait({self._timer})

    async def close(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            await asyncio.wait({self._timer})
        self._timer = None

    def _arm(self) -> None:
        current = self._timer
        # A retry armed from inside the running timer must not cancel itself
        if current is not None and not current.done() and current is not asyncio.current_task():
            current.cancel()
        self._timer = asyncio.get_running_loop().create_task(
            self._debounced(), name="SnapshotSyncDebounce"
        )

    async def _debounced(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self._save_pending()

    async def _save_pending(self) -> SaveResult:
        snapshot = self._pending
        if snapshot is None:
            return self.last_result or SaveResult(ok=True, day=self.last_saved_day)
        self._pending = None
        day = _snapshot_day(snapshot)

        self._saving = True
        await self._set_status(SyncStatus.SAVING)
        try:
            await self.store.save_state(snapshot)
        except Exception as e:
            self._saving = False
            return await self._on_failure(snapshot, day, e)
        self._saving = False

        self._failures = 0
        self.last_saved_day = day if self.last_saved_day is None else max(self.last_saved_day, day)
        result = SaveResult(ok=True, day=day, attempts=1)
        self.last_result = result
        if self._pending is not None:
            # Mutations arrived during the write
            self._arm()
            await self._set_status(SyncStatus.PENDING, result)
        else:
            await self._set_status(SyncStatus.SYNCED, result)
        return result

    async def _on_failure(self, snapshot: Dict[str, Any], day: int, error: Exception) -> SaveResult:
        self._failures += 1
        result = SaveResult(ok=False, day=day, attempts=self._failures, error=str(error))
        self.last_result = result
        logger.warning(
            "Snapshot save failed for day %d (attempt %d/%d): %s",
            day,
            self._failures,
            self.max_retries + 1,
            error,
        )
        if self._pending is not None:
            # A newer snapshot supersedes the failed one
            self._arm()
            await self._set_status(SyncStatus.PENDING, result)
            return result
        if self._failures > self.max_retries:
            await self._set_status(SyncStatus.FAILED, result)
            return result
        self._pending = snapshot
        self._arm()
        await self._set_status(SyncStatus.ERROR, result)
        return result

    async def _set_status(self, status: SyncStatus, result: Optional[SaveResult] = None) -> None:
        if status is self._status and result is None:
            return
        self._status = status
        if self._listener is None:
            return
        try:
            await self._listener(status, result)
        except Exception as e:
            logger.warning("Sync status listener failed: %s", e)


__all__ = [
    "InMemoryStateStore",
    "JsonFileStateStore",
    "SaveResult",
    "SnapshotSync",
    "StateStore",
    "SyncStatus",
]
