"""Domain Events related to backend calls and resilience.

Events for calls being issued, deferred by the rate limiter, retried,
replaced by a fallback, or served from cache.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""


@dataclass
class ApiCallInitiated(DomainEvent):
    endpoint: str
    method: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    endpoint: str
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """A call failed; `error_kind` is the classified ErrorKind value."""
    endpoint: str
    error_kind: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """The rate limiter held a call back before issuing it."""
    endpoint: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class CooldownStarted(DomainEvent):
    """A 429 opened a global cooldown window."""
    endpoint: str
    retry_after_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    endpoint: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class FallbackTriggered(DomainEvent):
    operation: str
    reason: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CacheHit(DomainEvent):
    endpoint: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class BatchFlushed(DomainEvent):
    language: str
    item_count: int
    translated: bool
    timestamp: float = field(default_factory=time.time)


EventListener = Callable[[DomainEvent], None]


class EventDispatcher:
    """Logs events and forwards them to an optional listener."""

    def __init__(self, listener: Optional[EventListener] = None):
        self._listener = listener

    def dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._listener is None:
            return
        try:
            self._listener(event)
        except Exception as e:
            # A faulty observer must not break the call it is observing
            logger.error(f"Event listener failed on {type(event).__name__}: {e}", exc_info=True)
