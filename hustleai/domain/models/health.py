"""Backend health domain models."""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class BackendStatus(str, Enum):
    CHECKING = "checking"
    ONLINE = "online"
    DEGRADED = "degraded"
    OFFLINE = "offline"


# Short human-readable strings for passive display
STATUS_MESSAGES = {
    "initializing": "Initializing...",
    "checking": "Checking backend...",
    "online": "AI Online",
    "degraded": "AI Slow",
    "offline": "AI Offline",
    "offline_timeout": "AI Offline (Timeout)",
}


@dataclass
class HealthStatus:
    """Advisory snapshot of backend availability."""
    status: BackendStatus = BackendStatus.CHECKING
    last_check: float = 0.0  # Unix timestamp of the last settled check
    latency_ms: Optional[float] = None
    version: Optional[str] = None
    message: str = field(default=STATUS_MESSAGES["initializing"])

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthStatus":
        """Rebuilds a status from its persisted form.

        Raises:
            ValueError: If the stored status is not one of the four known values.
        """
        return cls(
            status=BackendStatus(data["status"]),
            last_check=float(data.get("last_check") or 0.0),
            latency_ms=data.get("latency_ms"),
            version=data.get("version"),
            message=str(data.get("message") or STATUS_MESSAGES.get(data["status"], "")),
        )

    @property
    def is_available(self) -> bool:
        return self.status in (BackendStatus.ONLINE, BackendStatus.DEGRADED)

    def age_seconds(self, now: Optional[float] = None) -> float:
        if not self.last_check:
            return float("inf")
        return (now if now is not None else time.time()) - self.last_check
