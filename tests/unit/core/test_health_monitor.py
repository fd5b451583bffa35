import asyncio

import pytest

from hustleai.domain.errors import BackendOfflineError, RateLimitedError, RequestTimeoutError
from hustleai.domain.models.health import BackendStatus, HealthStatus
from hustleai.infrastructure.storage.status_store import MemoryStatusStore
from hustleai.core.services.health_monitor import HealthMonitor

WALL_TIME = 1_700_000_000.0


class ScriptedCheck:
    """Health check that advances the latency clock and replays scripted outcomes."""

    def __init__(self, latency_clock, outcomes):
        self.latency_clock = latency_clock
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, timeout_s):
        self.calls += 1
        latency_s, outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        self.latency_clock.now += latency_s
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _monitor(check_fn, latency_clock, store=None, **kwargs):
    return HealthMonitor(
        check_fn,
        store=store,
        clock=latency_clock,
        wall_clock=lambda: WALL_TIME,
        **kwargs,
    )


@pytest.mark.parametrize(
    "latency_ms, expected",
    [(0, BackendStatus.ONLINE), (2999, BackendStatus.ONLINE), (3000, BackendStatus.DEGRADED), (4500, BackendStatus.DEGRADED)],
)
def test_classify_latency_threshold(stepping_clock, latency_ms, expected):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0, {})]), stepping_clock)

    assert monitor.classify({"status": "ok"}, latency_ms).status is expected


def test_classify_unhealthy_payload_is_offline(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0, {})]), stepping_clock)

    status = monitor.classify({"status": "error"}, 10)

    assert status.status is BackendStatus.OFFLINE
    assert status.message == "AI Offline"


@pytest.mark.asyncio
async def test_fast_check_is_online_and_persisted(stepping_clock):
    store = MemoryStatusStore()
    check_fn = ScriptedCheck(stepping_clock, [(0.12, {"status": "ok", "version": "2.1.0"})])
    monitor = _monitor(check_fn, stepping_clock, store=store)

    status = await monitor.check_health()

    assert status.status is BackendStatus.ONLINE
    assert status.message == "AI Online"
    assert status.latency_ms == pytest.approx(120.0)
    assert status.version == "2.1.0"
    assert status.last_check == WALL_TIME
    assert store.load() == status


@pytest.mark.asyncio
async def test_slow_check_is_degraded(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(3.0, {"status": "ok"})]), stepping_clock)

    status = await monitor.check_health()

    assert status.status is BackendStatus.DEGRADED
    assert status.message == "AI Slow"


@pytest.mark.asyncio
async def test_connection_failure_is_offline(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0, BackendOfflineError("refused"))]), stepping_clock)

    status = await monitor.check_health()

    assert status.status is BackendStatus.OFFLINE
    assert status.message == "AI Offline"
    assert status.latency_ms is None


@pytest.mark.asyncio
async def test_transport_timeout_is_offline_timeout(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(5.0, RequestTimeoutError(5.0))]), stepping_clock)

    status = await monitor.check_health()

    assert status.status is BackendStatus.OFFLINE
    assert status.message == "AI Offline (Timeout)"


@pytest.mark.asyncio
async def test_hung_check_is_cut_off_at_check_timeout(stepping_clock):
    async def hang(timeout_s):
        await asyncio.sleep(10)

    monitor = _monitor(hang, stepping_clock, check_timeout_s=0.05)

    status = await monitor.check_health()

    assert status.status is BackendStatus.OFFLINE
    assert status.message == "AI Offline (Timeout)"


@pytest.mark.asyncio
async def test_subscribers_see_checking_then_result(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})]), stepping_clock)
    seen = []
    monitor.subscribe(lambda s: seen.append(s.status))

    await monitor.check_health()

    assert seen == [BackendStatus.CHECKING, BackendStatus.ONLINE]


@pytest.mark.asyncio
async def test_checking_is_never_persisted(stepping_clock):
    store = MemoryStatusStore()
    saved = []
    original_save = store.save
    store.save = lambda status: (saved.append(status.status), original_save(status))
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})]), stepping_clock, store=store)

    await monitor.check_health()

    assert saved == [BackendStatus.ONLINE]


@pytest.mark.asyncio
async def test_rate_limited_check_keeps_last_settled_status(stepping_clock):
    store = MemoryStatusStore()
    saved = []
    original_save = store.save
    store.save = lambda status: (saved.append(status.status), original_save(status))
    check_fn = ScriptedCheck(stepping_clock, [(0.1, {"status": "ok", "version": "2.1.0"}), (0, RateLimitedError(60))])
    monitor = _monitor(check_fn, stepping_clock, store=store)
    seen = []
    monitor.subscribe(lambda s: seen.append(s.status))

    first = await monitor.check_health()
    second = await monitor.check_health()

    assert second is first
    assert monitor.get_status().status is BackendStatus.ONLINE
    assert seen == [BackendStatus.CHECKING, BackendStatus.ONLINE, BackendStatus.CHECKING, BackendStatus.ONLINE]
    assert saved == [BackendStatus.ONLINE]


@pytest.mark.asyncio
async def test_reinitialize_without_check_restores_settled_status(stepping_clock):
    store = MemoryStatusStore()
    first = _monitor(ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})]), stepping_clock, store=store)
    await first.initialize(run_check=True, schedule=False)

    second = _monitor(ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})]), stepping_clock, store=store)
    status = await second.initialize(run_check=False, schedule=False)

    assert status.status is BackendStatus.ONLINE
    assert status.last_check == WALL_TIME


@pytest.mark.asyncio
async def test_fresh_monitor_without_history_reports_checking(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0, {"status": "ok"})]), stepping_clock, store=MemoryStatusStore())

    status = await monitor.initialize(run_check=False, schedule=False)

    assert status.status is BackendStatus.CHECKING
    assert status.message == "Initializing..."


@pytest.mark.asyncio
async def test_concurrent_checks_share_one_request(stepping_clock):
    gate = asyncio.Event()
    calls = []

    async def slow_check(timeout_s):
        calls.append(timeout_s)
        await gate.wait()
        return {"status": "ok"}

    monitor = _monitor(slow_check, stepping_clock)
    first = asyncio.ensure_future(monitor.check_health())
    second = asyncio.ensure_future(monitor.check_health())
    await asyncio.sleep(0)
    gate.set()

    assert await first == await second
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_periodic_polling_and_stop(clock, stepping_clock):
    check_fn = ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})])
    monitor = _monitor(check_fn, stepping_clock, interval_s=300, sleep=clock.sleep)

    await monitor.initialize(run_check=True, schedule=True)
    assert check_fn.calls == 1
    assert monitor.running

    await clock.advance(299)
    assert check_fn.calls == 1
    await clock.advance(1)
    assert check_fn.calls == 2
    await clock.advance(600)
    assert check_fn.calls == 4

    monitor.stop()
    await clock.advance(900)
    assert check_fn.calls == 4
    assert not monitor.running
    assert monitor.get_status().status is BackendStatus.ONLINE


@pytest.mark.asyncio
async def test_unsubscribe_during_notification(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})]), stepping_clock)
    seen = []

    def once(status):
        seen.append(("once", status.status))
        unsubscribe_once()

    def always(status):
        seen.append(("always", status.status))

    unsubscribe_once = monitor.subscribe(once)
    monitor.subscribe(always)

    await monitor.check_health()

    assert seen == [
        ("once", BackendStatus.CHECKING),
        ("always", BackendStatus.CHECKING),
        ("always", BackendStatus.ONLINE),
    ]
    # Unsubscribing twice is harmless
    unsubscribe_once()


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_others(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0.1, {"status": "ok"})]), stepping_clock)
    seen = []

    def broken(status):
        raise RuntimeError("listener bug")

    monitor.subscribe(broken)
    monitor.subscribe(lambda s: seen.append(s.status))

    status = await monitor.check_health()

    assert status.status is BackendStatus.ONLINE
    assert seen[-1] is BackendStatus.ONLINE


def test_restore_keeps_default_when_store_is_empty(stepping_clock):
    monitor = _monitor(ScriptedCheck(stepping_clock, [(0, {})]), stepping_clock, store=MemoryStatusStore())

    assert monitor.restore() == HealthStatus()
