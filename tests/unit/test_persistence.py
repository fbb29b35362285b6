import json

import pytest

from dropsim_core.errors import PersistenceFailure
from dropsim_core.persistence import (
    InMemoryStateStore,
    JsonFileStateStore,
    SnapshotSync,
    SyncStatus,
)


class FlakyStore(InMemoryStateStore):
    """Fails the first ``failures`` saves."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def save_state(self, snapshot):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise PersistenceFailure(f"write {self.attempts} failed")
        await super().save_state(snapshot)


def _snap(day):
    return {"day": day, "revenue": float(day), "expenses": 0.0}


@pytest.mark.asyncio
async def test_debounce_writes_only_the_newest_snapshot():
    store = InMemoryStateStore()
    sync = SnapshotSync(store, debounce_seconds=0.05)
    for day in (1, 2, 3):
        assert await sync.schedule(_snap(day)) is True
    assert sync.status is SyncStatus.PENDING

    await sync.wait_idle()
    assert [s["day"] for s in store.saved] == [3]
    assert sync.status is SyncStatus.SYNCED
    assert sync.last_saved_day == 3
    assert sync.last_result.ok is True


@pytest.mark.asyncio
async def test_stale_snapshots_are_ignored():
    store = InMemoryStateStore()
    sync = SnapshotSync(store, debounce_seconds=0.0)
    await sync.schedule(_snap(5))
    await sync.wait_idle()

    assert await sync.schedule(_snap(4)) is False
    assert not sync.has_pending
    assert await sync.schedule(_snap(5)) is True
    await sync.wait_idle()
    assert [s["day"] for s in store.saved] == [5, 5]


@pytest.mark.asyncio
async def test_failed_write_is_retried():
    store = FlakyStore(failures=1)
    statuses = []

    async def listener(status, result):
        statuses.append(status)

    sync = SnapshotSync(store, debounce_seconds=0.0, max_retries=2, listener=listener)
    await sync.schedule(_snap(1))
    await sync.wait_idle()

    assert store.attempts == 2
    assert [s["day"] for s in store.saved] == [1]
    assert sync.status is SyncStatus.SYNCED
    assert statuses == [
        SyncStatus.PENDING,
        SyncStatus.SAVING,
        SyncStatus.ERROR,
        SyncStatus.SAVING,
        SyncStatus.SYNCED,
    ]


@pytest.mark.asyncio
async def test_retries_are_bounded():
    store = FlakyStore(failures=100)
    sync = SnapshotSync(store, debounce_seconds=0.0, max_retries=2)
    await sync.schedule(_snap(1))
    await sync.wait_idle()

    assert store.attempts == 3
    assert sync.status is SyncStatus.FAILED
    assert sync.last_result.ok is False
    assert sync.last_result.attempts == 3
    assert "failed" in sync.last_result.error

    # The next mutation starts a fresh round of attempts
    store.failures = 0
    await sync.schedule(_snap(2))
    await sync.wait_idle()
    assert sync.status is SyncStatus.SYNCED
    assert sync.last_saved_day == 2


@pytest.mark.asyncio
async def test_flush_skips_the_debounce_window():
    store = InMemoryStateStore()
    sync = SnapshotSync(store, debounce_seconds=60.0)
    await sync.schedule(_snap(1))
    result = await sync.flush()
    assert result.ok is True
    assert result.day == 1
    assert store.saved == [_snap(1)]
    await sync.close()


@pytest.mark.asyncio
async def test_listener_errors_do_not_break_sync():
    async def broken(status, result):
        raise RuntimeError("boom")

    store = InMemoryStateStore()
    sync = SnapshotSync(store, debounce_seconds=0.0, listener=broken)
    await sync.schedule(_snap(1))
    await sync.wait_idle()
    assert sync.status is SyncStatus.SYNCED


@pytest.mark.asyncio
async def test_in_memory_store_round_trip():
    store = InMemoryStateStore({"day": 2})
    assert await store.load_state() == {"day": 2}
    await store.save_state(_snap(3))
    assert (await store.load_state())["day"] == 3


@pytest.mark.asyncio
async def test_json_file_store_round_trip(tmp_path):
    store = JsonFileStateStore(tmp_path / "sessions", "learner-1")
    assert await store.load_state() is None

    await store.save_state(_snap(4))
    assert store.path.name == "learner-1.json"
    assert json.loads(store.path.read_text(encoding="utf-8"))["day"] == 4
    assert await store.load_state() == _snap(4)
    assert not store.path.with_suffix(".json.tmp").exists()


@pytest.mark.asyncio
async def test_json_file_store_rejects_corrupt_files(tmp_path):
    store = JsonFileStateStore(tmp_path, "broken")
    store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceFailure):
        await store.load_state()

    store.path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(PersistenceFailure):
        await store.load_state()
