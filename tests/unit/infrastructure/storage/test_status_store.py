import pytest

from hustleai.domain.models.health import BackendStatus, HealthStatus
from hustleai.infrastructure.storage.status_store import STATUS_KEY, DiskStatusStore, MemoryStatusStore


def _online():
    return HealthStatus(
        status=BackendStatus.ONLINE,
        last_check=1_700_000_000.0,
        latency_ms=120.5,
        version="1.0.0",
        message="AI Online",
    )


def test_empty_store_loads_none(status_store):
    assert status_store.load() is None


def test_round_trip_survives_reopen(tmp_path):
    first = DiskStatusStore(tmp_path / "state")
    first.save(_online())
    first.close()

    second = DiskStatusStore(tmp_path / "state")
    try:
        assert second.load() == _online()
    finally:
        second.close()


def test_checking_status_is_never_restored(status_store):
    status_store.save(HealthStatus(status=BackendStatus.CHECKING, message="Checking backend..."))

    assert status_store.load() is None


@pytest.mark.parametrize("garbage", ["not a dict", {"status": "exploded"}, {"no_status": 1}])
def test_unreadable_data_is_ignored(status_store, garbage):
    status_store._cache.set(STATUS_KEY, garbage)

    assert status_store.load() is None


def test_save_failure_is_logged_not_raised(status_store, mocker, caplog):
    mocker.patch.object(status_store._cache, "set", side_effect=OSError("disk full"))

    status_store.save(_online())

    assert "Failed to persist health status" in caplog.text


def test_clear_removes_status(status_store):
    status_store.save(_online())
    status_store.clear()

    assert status_store.load() is None


def test_memory_store():
    store = MemoryStatusStore()
    assert store.load() is None

    store.save(_online())
    assert store.load() == _online()

    store.save(HealthStatus())
    assert store.load() is None
