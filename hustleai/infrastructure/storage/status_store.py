"""diskcache-backed persistence for the backend health status."""

import logging
from pathlib import Path
from typing import Optional, Union

import diskcache

from hustleai.domain.interfaces.status_store import StatusStore
from hustleai.domain.models.health import BackendStatus, HealthStatus

logger = logging.getLogger(__name__)

STATUS_KEY = "hustleai_health_status"


class DiskStatusStore(StatusStore):
    """Keeps the last settled HealthStatus in a diskcache directory.

    Storage is advisory: read and write failures are logged and otherwise
    ignored, so a broken cache directory never takes the monitor down.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._cache = diskcache.Cache(str(self.directory))
        logger.info(f"DiskStatusStore initialized at {self.directory}")

    def load(self) -> Optional[HealthStatus]:
        try:
            data = self._cache.get(STATUS_KEY)
        except Exception as e:
            logger.warning(f"Failed to read persisted health status: {e}")
            return None
        if not isinstance(data, dict):
            return None
        try:
            status = HealthStatus.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable persisted health status: {e}")
            return None
        if status.status is BackendStatus.CHECKING:
            # Only settled results are meaningful after a restart
            return None
        return status

    def save(self, status: HealthStatus) -> None:
        try:
            self._cache.set(STATUS_KEY, status.to_dict())
        except Exception as e:
            logger.warning(f"Failed to persist health status: {e}")

    def clear(self) -> None:
        self._cache.delete(STATUS_KEY)

    def close(self) -> None:
        self._cache.close()


class MemoryStatusStore(StatusStore):
    """Process-local store for monitors that do not need to survive a restart."""

    def __init__(self, initial: Optional[HealthStatus] = None):
        self._data = initial.to_dict() if initial else None

    def load(self) -> Optional[HealthStatus]:
        if self._data is None:
            return None
        status = HealthStatus.from_dict(self._data)
        return None if status.status is BackendStatus.CHECKING else status

    def save(self, status: HealthStatus) -> None:
        self._data = status.to_dict()
