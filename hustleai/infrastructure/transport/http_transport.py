"""HTTP transport for the HustleAI backend.

Executes one request with a hard wall-clock timeout and classifies every
failure into the `BackendError` taxonomy. This is the only module that
knows about httpx.
"""

import asyncio
import json
import logging
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import httpx

from hustleai.domain.errors import (
    BackendOfflineError,
    HttpStatusError,
    RateLimitedError,
    RequestTimeoutError,
    ResponseParseError,
)
from hustleai.domain.interfaces.transport import Transport
from hustleai.domain.models.requests import RequestDescriptor

logger = logging.getLogger(__name__)

HTTP_TOO_MANY_REQUESTS = 429
DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# "retry after 30 seconds", "retryAfter: 30", "try again in 30s"
_RETRY_AFTER_PATTERNS = [
    re.compile(r"retry[\s_-]?after\D{0,10}(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*(?:s|sec|secs|seconds)\b", re.IGNORECASE),
]


def parse_retry_after(body_text: str, header_value: Optional[str] = None) -> Optional[float]:
    """Extracts the server-suggested wait from a 429 response.

    Looks at the JSON body (`retryAfter` / `retry_after`), then the error
    message text, then the Retry-After header (seconds or HTTP date).

    Returns:
        Seconds to wait, or None when the response does not say.
    """
    try:
        data = json.loads(body_text) if body_text else None
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("retryAfter", "retry_after", "retryAfterSeconds"):
            value = data.get(key)
            if isinstance(value, (int, float)) and value >= 0:
                return float(value)
        message = " ".join(str(data.get(k, "")) for k in ("error", "message", "detail"))
    else:
        message = body_text or ""

    for pattern in _RETRY_AFTER_PATTERNS:
        match = pattern.search(message)
        if match:
            return float(match.group(1))

    if header_value:
        try:
            return float(header_value)
        except ValueError:
            pass
        try:
            delta = parsedate_to_datetime(header_value) - datetime.now(timezone.utc)
            return max(0.0, delta.total_seconds())
        except (TypeError, ValueError):
            pass

    return None


class HttpTransport(Transport):
    """Transport over a shared `httpx.AsyncClient`."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initializes the transport.

        Args:
            base_url: Backend base address, e.g. 'https://host/api'.
            client: Optional pre-built httpx client (tests pass one with a MockTransport).
            headers: Extra headers sent with every request.
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._headers = {**DEFAULT_HEADERS, **(headers or {})}
        logger.info(f"HttpTransport initialized with base URL: {self.base_url}")

    async def execute(self, request: RequestDescriptor) -> Any:
        url = f"{self.base_url}{request.endpoint}"
        method = request.method.upper()
        logger.debug(f"{method} {url} (timeout={request.timeout_s}s)")

        start_time = time.perf_counter()
        try:
            # wait_for cancels the in-flight request once the budget is spent
            response = await asyncio.wait_for(
                self._client.request(
                    method,
                    url,
                    json=request.body,
                    headers=self._headers,
                    timeout=request.timeout_s,
                ),
                timeout=request.timeout_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"{method} {request.endpoint} timed out after {request.timeout_s}s")
            raise RequestTimeoutError(request.timeout_s, request.endpoint) from e
        except httpx.DecodingError as e:
            logger.warning(f"{method} {request.endpoint} sent an undecodable body: {e}")
            raise ResponseParseError(f"Undecodable response from {request.endpoint}: {e}", request.endpoint) from e
        except httpx.RequestError as e:
            logger.warning(f"{method} {request.endpoint} unreachable: {type(e).__name__}: {e}")
            raise BackendOfflineError(f"Backend unavailable: {e}", request.endpoint) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{method} {request.endpoint} -> {response.status_code} in {latency_ms:.0f}ms")
        self._raise_for_status(response, request)

        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(f"Invalid JSON from {request.endpoint}: {e}", request.endpoint) from e

    def _raise_for_status(self, response: httpx.Response, request: RequestDescriptor) -> None:
        if response.is_success:
            return

        body_text = response.text
        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            retry_after = parse_retry_after(body_text, response.headers.get("retry-after"))
            logger.warning(f"{request.endpoint} rate limited (retry after: {retry_after if retry_after is not None else 'unspecified'})")
            raise RateLimitedError(retry_after, request.endpoint)

        logger.error(f"{request.method} {request.endpoint} failed with HTTP {response.status_code}: {body_text[:200]}")
        raise HttpStatusError(response.status_code, body_text, request.endpoint)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

