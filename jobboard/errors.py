"""Error taxonomy shared by the stores, REST clients and HTTP surface."""
from dataclasses import dataclass
from typing import Any, Optional


class JobBoardError(Exception):
    """Base class for all job board errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(JobBoardError):
    """Malformed input rejected before anything is applied."""


class AuthorizationError(JobBoardError):
    """Caller is not allowed to perform the action."""


class NotFoundError(JobBoardError):
    """Target of the operation no longer exists."""


class CapacityExceeded(JobBoardError):
    """A bounded collection is full."""

    def __init__(self, capacity: int):
        super().__init__(f"Maximum {capacity} jobs can be compared")
        self.capacity = capacity


class StorageError(JobBoardError):
    """The persistence backend failed."""


class NetworkError(JobBoardError):
    """A remote request failed.

    Attributes:
        kind: Classification (unauthorized, forbidden, not_found, rate_limited,
            server_error, validation, network, generic)
        status: HTTP status code, None when no response was received
    """

    def __init__(self, message: str, kind: str = 'generic', status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status = status


@dataclass(frozen=True)
class Result:
    """Explicit outcome of a store operation."""
    ok: bool
    error: Optional[JobBoardError] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> 'Result':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: JobBoardError) -> 'Result':
        return cls(ok=False, error=error)
