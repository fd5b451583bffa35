"""Common Value Objects shared across the client.

NewTypes give semantic names to plain strings; the TypedDicts describe
small structured values that travel between layers.
"""

import json
from typing import Any, Dict, NewType, Optional, Tuple, TypedDict

# === Transport Context ===
Endpoint = NewType("Endpoint", str)          # Path below the base URL, e.g. '/agent/chat'
HttpMethod = NewType("HttpMethod", str)      # 'GET', 'POST', 'PATCH'

# === Caching Context ===
CacheKey = NewType("CacheKey", str)          # method + endpoint + canonical body

# === Identity / Localization ===
UserId = NewType("UserId", str)
LanguageCode = NewType("LanguageCode", str)  # ISO-639-1, e.g. 'en', 'es'

# (language, normalized text) - identifies one pending translation
TranslationKey = Tuple[LanguageCode, str]


class PayRange(TypedDict):
    """Estimated pay band in dollars."""
    min: float
    max: float


class Location(TypedDict):
    lat: float
    lng: float


def canonical_body(body: Optional[Dict[str, Any]]) -> str:
    """Serializes a request body deterministically (sorted keys, compact)."""
    if body is None:
        return ""
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)
