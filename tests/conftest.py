import asyncio
import heapq
import itertools
import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest
from typer.testing import CliRunner

from hustleai.infrastructure.config.settings import clear_test_config, reset_configuration
from hustleai.infrastructure.storage.status_store import DiskStatusStore
from hustleai.infrastructure.storage.translation_store import DiskTranslationStore
from hustleai.infrastructure.transport.http_transport import HttpTransport

BASE_URL = "http://hustleai.test/api"


class VirtualClock:
    """Deterministic time for coroutine tests.

    `sleep` parks the caller until `advance` moves virtual time past its
    deadline; sleepers are woken in deadline order and every woken task gets
    a chance to run before time moves on.
    """

    def __init__(self, start: float = 0.0):
        self.now = start
        self._sleepers: List[Any] = []
        self._seq = itertools.count()

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self.now + max(0.0, delay), next(self._seq), future))
        await future

    async def settle(self) -> None:
        for _ in range(50):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await self.settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            if future.done():
                continue
            self.now = max(self.now, deadline)
            future.set_result(None)
            await self.settle()
        self.now = target
        await self.settle()


class SteppingClock:
    """Clock whose `sleep` returns at once after moving time forward; records every sleep."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


class RecordingBackend:
    """httpx MockTransport handler that records requests and replies from a route table."""

    def __init__(self, clock: Callable[[], float] = lambda: 0.0):
        self.routes: Dict[str, Any] = {}
        self.requests: List[httpx.Request] = []
        self.request_times: List[float] = []
        self._clock = clock

    def route(self, path: str, responder: Any) -> None:
        """`responder` is an httpx.Response, a list of them (served in order), or a callable."""
        self.routes[path] = responder

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path)]

    def body_of(self, request: httpx.Request) -> Any:
        return json.loads(request.content.decode("utf-8"))

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.request_times.append(self._clock())
        for path, responder in self.routes.items():
            if request.url.path.endswith(path):
                if isinstance(responder, list):
                    return responder.pop(0) if len(responder) > 1 else responder[0]
                if callable(responder):
                    result = responder(request)
                    if asyncio.iscoroutine(result):
                        result = await result
                    return result
                return responder
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def stepping_clock():
    return SteppingClock()


@pytest.fixture
def backend(clock):
    return RecordingBackend(clock)


@pytest.fixture
def transport(backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    return HttpTransport(BASE_URL, client=client)


@pytest.fixture
def status_store(tmp_path: Path):
    store = DiskStatusStore(tmp_path / "state")
    yield store
    store.close()


@pytest.fixture
def translation_store(tmp_path: Path):
    store = DiskTranslationStore(tmp_path / "translations")
    yield store
    store.close()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path):
    """Keeps tests away from the user's config file, .env and state directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("hustleai.infrastructure.config.settings.DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    reset_configuration()
    yield
    clear_test_config()
    reset_configuration()


@pytest.fixture
def base_url():
    return BASE_URL
