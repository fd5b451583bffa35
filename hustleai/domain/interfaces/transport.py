"""Interface for the network transport.

Defines the contract for executing a single request against the backend.
"""

import abc
from typing import Any

from ..models.requests import RequestDescriptor


class Transport(abc.ABC):
    """Abstract Base Class for executing one backend call."""

    @abc.abstractmethod
    async def execute(self, request: RequestDescriptor) -> Any:
        """Executes a single request within its timeout.

        Args:
            request: The request to issue.

        Returns:
            The decoded JSON payload, unchanged.

        Raises:
            BackendError: A classified failure (timeout, offline, rate limited,
                HTTP error or parse error). Nothing else escapes.
        """
        pass

    async def aclose(self) -> None:
        """Releases network resources. Optional for implementations."""
        return None
