"""Backend health monitoring.

Polls the backend's health endpoint on its own timer, classifies the result
as online, degraded or offline, persists every settled status and notifies
subscribers. Nothing on the request path waits for it.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from hustleai.domain.errors import BackendError, RateLimitedError, RequestTimeoutError
from hustleai.domain.interfaces.status_store import StatusStore
from hustleai.domain.models.health import STATUS_MESSAGES, BackendStatus, HealthStatus

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60
DEFAULT_CHECK_TIMEOUT_SECONDS = 5.0
DEFAULT_DEGRADED_THRESHOLD_MS = 3000.0

# Issues one health request within the given timeout and returns {status, version}
HealthCheckFn = Callable[[float], Awaitable[Dict[str, Any]]]
StatusListener = Callable[[HealthStatus], None]


class HealthMonitor:
    """Independently scheduled checker with persisted state and subscribers."""

    def __init__(
        self,
        check_fn: HealthCheckFn,
        store: Optional[StatusStore] = None,
        interval_s: float = DEFAULT_INTERVAL_SECONDS,
        check_timeout_s: float = DEFAULT_CHECK_TIMEOUT_SECONDS,
        degraded_threshold_ms: float = DEFAULT_DEGRADED_THRESHOLD_MS,
        clock: Callable[[], float] = time.perf_counter,
        wall_clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the monitor.

        Args:
            check_fn: Coroutine function performing the health request.
            store: Where settled statuses are persisted; None keeps them in memory only.
            interval_s: Delay between scheduled checks.
            check_timeout_s: A check slower than this counts as offline.
            degraded_threshold_ms: Latency at or above this is reported as degraded.
            clock: Monotonic source used to measure check latency.
            wall_clock: Source of the `last_check` timestamps.
            sleep: Coroutine used between scheduled checks.
        """
        self._check_fn = check_fn
        self._store = store
        self.interval_s = interval_s
        self.check_timeout_s = check_timeout_s
        self.degraded_threshold_ms = degraded_threshold_ms
        self._clock = clock
        self._wall_clock = wall_clock
        self._sleep = sleep

        self._status = HealthStatus()
        self._listeners: List[StatusListener] = []
        self._poll_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        logger.info(
            f"HealthMonitor initialized: every {interval_s}s, check timeout {check_timeout_s}s, "
            f"degraded at {degraded_threshold_ms}ms"
        )

    # --- Lifecycle ---

    def restore(self) -> HealthStatus:
        """Loads the last persisted status, if any, for immediate display."""
        if self._store is None:
            return self._status
        persisted = self._store.load()
        if persisted is not None:
            self._status = persisted
            logger.info(f"Restored persisted health status: {persisted.status.value}")
        return self._status

    async def initialize(self, run_check: bool = True, schedule: bool = True) -> HealthStatus:
        """Restores the persisted status, checks once and starts periodic polling.

        Args:
            run_check: Check immediately after restoring.
            schedule: Start the periodic timer.

        Returns:
            The status after initialization.
        """
        self.restore()
        if run_check:
            await self.check_health()
        if schedule:
            self.start()
        return self._status

    def start(self) -> None:
        if self.running:
            return
        self._poll_task = asyncio.ensure_future(self._poll_forever())

    def stop(self) -> None:
        """Cancels periodic polling. The current status is kept."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
            logger.info("Health monitoring stopped")

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_forever(self) -> None:
        while True:
            await self._sleep(self.interval_s)
            await self.check_health()

    # --- Checking ---

    async def check_health(self) -> HealthStatus:
        """Runs one check, or joins the one already in flight."""
        if self._inflight is not None and not self._inflight.done():
            return await asyncio.shield(self._inflight)
        self._inflight = asyncio.ensure_future(self._run_check())
        return await asyncio.shield(self._inflight)

    async def _run_check(self) -> HealthStatus:
        previous = self._status
        # Shown to subscribers while the check runs, never persisted
        self._set_status(
            HealthStatus(
                status=BackendStatus.CHECKING,
                last_check=self._status.last_check,
                latency_ms=self._status.latency_ms,
                version=self._status.version,
                message=STATUS_MESSAGES["checking"],
            ),
            persist=False,
        )

        start_time = self._clock()
        try:
            payload = await asyncio.wait_for(self._check_fn(self.check_timeout_s), timeout=self.check_timeout_s)
        except (asyncio.TimeoutError, RequestTimeoutError):
            logger.warning(f"Health check timed out after {self.check_timeout_s}s")
            new_status = self._offline(STATUS_MESSAGES["offline_timeout"])
        except RateLimitedError as e:
            # The last settled status stands until the cooldown ends
            logger.info(f"Health check deferred by rate limit ({e.retry_after:g}s); keeping {previous.status.value}")
            self._set_status(previous, persist=False)
            return previous
        except BackendError as e:
            logger.warning(f"Health check failed: {e.kind.value}: {e}")
            new_status = self._offline(STATUS_MESSAGES["offline"])
        else:
            latency_ms = (self._clock() - start_time) * 1000
            new_status = self.classify(payload, latency_ms)

        self._set_status(new_status, persist=True)
        return new_status

    def classify(self, payload: Any, latency_ms: float) -> HealthStatus:
        """Maps a completed check to a status.

        A reply whose status is not 'ok' counts as offline; otherwise latency
        below the threshold is online and anything at or above it degraded.
        """
        if not isinstance(payload, dict) or payload.get("status") != "ok":
            logger.warning(f"Backend reported unhealthy status: {payload!r}")
            return self._offline(STATUS_MESSAGES["offline"])

        is_fast = latency_ms < self.degraded_threshold_ms
        version = payload.get("version")
        return HealthStatus(
            status=BackendStatus.ONLINE if is_fast else BackendStatus.DEGRADED,
            last_check=self._wall_clock(),
            latency_ms=latency_ms,
            version=str(version) if version is not None else None,
            message=STATUS_MESSAGES["online" if is_fast else "degraded"],
        )

    def _offline(self, message: str) -> HealthStatus:
        return HealthStatus(
            status=BackendStatus.OFFLINE,
            last_check=self._wall_clock(),
            message=message,
        )

    # --- State and subscribers ---

    def get_status(self) -> HealthStatus:
        return self._status

    def _set_status(self, status: HealthStatus, persist: bool) -> None:
        self._status = status
        if persist and self._store is not None:
            self._store.save(status)
        logger.debug(f"Health status -> {status.status.value} ({status.message})")
        self._notify(status)

    def _notify(self, status: HealthStatus) -> None:
        # Iterate a copy: listeners may (un)subscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Health listener failed: {e}", exc_info=True)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Registers a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        """Removes a listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)
