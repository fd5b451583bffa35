"""Tagged operation results.

Every facade operation returns an `OperationResult` whose outcome tells the
caller whether the value came from the backend, from the local fallback, or
stands for an explicit failure of a side-effecting operation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from hustleai.domain.errors import ErrorKind

T = TypeVar("T")


class Outcome(str, Enum):
    SUCCESS = "success"    # Backend (or cache) answered
    DEGRADED = "degraded"  # Local fallback stood in for the backend
    FAILED = "failed"      # Side-effecting call was not recorded


@dataclass
class OperationResult(Generic[T]):
    outcome: Outcome
    value: T
    error: Optional[ErrorKind] = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def degraded(self) -> bool:
        return self.outcome is Outcome.DEGRADED

    @classmethod
    def success(cls, value: T, cached: bool = False) -> "OperationResult[T]":
        return cls(outcome=Outcome.SUCCESS, value=value, cached=cached)

    @classmethod
    def fallback(cls, value: T, error: Optional[ErrorKind]) -> "OperationResult[T]":
        return cls(outcome=Outcome.DEGRADED, value=value, error=error)

    @classmethod
    def failure(cls, value: T, error: Optional[ErrorKind]) -> "OperationResult[T]":
        return cls(outcome=Outcome.FAILED, value=value, error=error)
