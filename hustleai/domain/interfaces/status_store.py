"""Interface for health status persistence."""

import abc
from typing import Optional

from ..models.health import HealthStatus


class StatusStore(abc.ABC):
    """Persists the last known HealthStatus across process restarts."""

    @abc.abstractmethod
    def load(self) -> Optional[HealthStatus]:
        """Returns the persisted status, or None when nothing usable is stored."""
        pass

    @abc.abstractmethod
    def save(self, status: HealthStatus) -> None:
        pass
