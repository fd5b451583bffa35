"""Classified backend errors.

Raw transport failures (httpx exceptions, asyncio timeouts, bad JSON) are
translated into these types exactly once, at the transport boundary. Layers
above the transport only ever see a `BackendError`.
"""

from enum import Enum
from typing import Optional

DEFAULT_RETRY_AFTER_SECONDS = 60.0


class ErrorKind(str, Enum):
    """The closed set of failure classes the client distinguishes."""
    TIMEOUT = "timeout"
    BACKEND_OFFLINE = "backend_offline"
    RATE_LIMITED = "rate_limited"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"


class BackendError(Exception):
    """Base class for every classified backend failure."""

    kind: ErrorKind = ErrorKind.BACKEND_OFFLINE

    def __init__(self, message: str, endpoint: Optional[str] = None):
        self.endpoint = endpoint
        super().__init__(message)

    @property
    def transient(self) -> bool:
        """Whether retrying the same request later may succeed."""
        return False


class RequestTimeoutError(BackendError):
    """The request did not complete within its wall-clock budget."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_s: float, endpoint: Optional[str] = None):
        self.timeout_s = timeout_s
        super().__init__(f"Request timed out after {timeout_s:.2f}s", endpoint)

    @property
    def transient(self) -> bool:
        return True


class BackendOfflineError(BackendError):
    """Connection-level failure: refused, unreachable or DNS."""

    kind = ErrorKind.BACKEND_OFFLINE

    @property
    def transient(self) -> bool:
        return True


class RateLimitedError(BackendError):
    """The backend answered 429.

    Attributes:
        retry_after: Seconds the server asked us to wait (60 when it did not say).
        declared: True when the server actually supplied the value.
    """

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        retry_after: Optional[float] = None,
        endpoint: Optional[str] = None,
    ):
        self.declared = retry_after is not None
        self.retry_after = retry_after if retry_after is not None else DEFAULT_RETRY_AFTER_SECONDS
        super().__init__(f"Rate limited, retry after {self.retry_after:g}s", endpoint)

    @property
    def transient(self) -> bool:
        return True


class HttpStatusError(BackendError):
    """Any other non-success HTTP status."""

    kind = ErrorKind.HTTP_ERROR

    def __init__(self, status: int, detail: str = "", endpoint: Optional[str] = None):
        self.status = status
        self.detail = detail
        message = f"HTTP {status}"
        if detail:
            message = f"{message}: {detail[:200]}"
        super().__init__(message, endpoint)

    @property
    def transient(self) -> bool:
        # 5xx may clear up on its own, 4xx will not
        return self.status >= 500


class ResponseParseError(BackendError):
    """The body could not be decoded or did not match the expected shape."""

    kind = ErrorKind.PARSE_ERROR
