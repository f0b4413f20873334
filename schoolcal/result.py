"""
Tagged result variant returned by the Events API client.

The success/error decision is taken once, where the HTTP response is read.
Callers branch on ``is_ok`` or call ``unwrap()`` and never look at the raw
response shape again.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from schoolcal.exceptions import ApiError, NetworkError, RemoteError

T = TypeVar("T")

FAILURE_NETWORK = "network"
FAILURE_API = "api"


@dataclass(frozen=True)
class ApiFailure:
    """
    Describes why an API call did not succeed.

    Attributes:
        kind: "network" (no usable answer) or "api" (structured error body)
        message: Human-readable error message
        status_code: HTTP status code, if a response was received
        details: Parsed error body, if any
    """
    kind: str
    message: str
    status_code: Optional[int] = None
    details: Optional[Any] = None

    def to_exception(self) -> RemoteError:
        """Build the exception matching this failure."""
        if self.kind == FAILURE_NETWORK:
            return NetworkError(self.message, status_code=self.status_code)
        return ApiError(self.message, status_code=self.status_code)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    failure: ApiFailure

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        """Raise the remote error carried by this result."""
        raise self.failure.to_exception()


Result = Union[Ok[T], Err]
