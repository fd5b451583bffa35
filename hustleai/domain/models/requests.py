"""Request-side domain models."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from hustleai.domain.models.common import CacheKey, Endpoint, HttpMethod, canonical_body

DEFAULT_REQUEST_TIMEOUT_S = 8.0


@dataclass(frozen=True)
class RequestDescriptor:
    """One outbound call. Created per call and discarded once it resolves."""
    endpoint: Endpoint
    method: HttpMethod = HttpMethod("GET")
    body: Optional[Dict[str, Any]] = None
    cache_eligible: bool = False
    timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S

    def cache_key(self) -> CacheKey:
        """method + endpoint + canonical body."""
        return CacheKey(f"{self.method.upper()} {self.endpoint} {canonical_body(self.body)}")
