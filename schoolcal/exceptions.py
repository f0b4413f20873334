"""
Exception taxonomy for the calendar event lifecycle.

Local failures (validation, targeting, illegal transitions, permissions)
are raised before any request leaves the process. Remote failures wrap
what the Events API reported so callers can tell "fix and resubmit"
apart from "retry".
"""

from typing import Optional


class CalendarError(Exception):
    """Base exception for calendar event errors."""
    pass


# ============================================================================
# Local (pre-network) errors
# ============================================================================


class ValidationError(CalendarError):
    """Raised when event input is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class InvalidTimeError(ValidationError):
    """Raised when a date or time cannot be composed into an event instant."""
    pass


class MissingTargetError(ValidationError):
    """Raised when a class-specific event has no class selected."""

    def __init__(self, message: str = "Select at least one class for a class-specific event"):
        super().__init__(message, field="class_division_ids")


class IllegalTransitionError(CalendarError):
    """Raised when approve/reject/edit is attempted from a state that forbids it.

    The UI disables these actions for non-pending events, so seeing this
    error means the caller's view of the event is stale or mis-filtered.
    """

    def __init__(self, event_id: str, current: str, action: str):
        self.event_id = event_id
        self.current = current
        self.action = action
        self.message = f"Cannot {action} event '{event_id}' in status '{current}'"
        super().__init__(self.message)


class PermissionDeniedError(CalendarError):
    """Raised when the viewer's role may not perform an action."""

    def __init__(self, action: str, role: str):
        self.action = action
        self.role = role
        self.message = f"Role '{role}' is not allowed to {action} events"
        super().__init__(self.message)


# ============================================================================
# Remote errors
# ============================================================================


class RemoteError(CalendarError):
    """Base exception for failures reported by (or reaching) the Events API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return True


class NetworkError(RemoteError):
    """Raised when the API is unreachable or answered without a usable error body."""
    pass


class ApiError(RemoteError):
    """Raised when the API returned a structured error."""

    @property
    def retryable(self) -> bool:
        # Client-side errors need the request fixed, not repeated
        return self.status_code is None or self.status_code >= 500


class FanOutError(RemoteError):
    """Raised when every per-class create request of a fan-out failed."""

    def __init__(self, failures: dict):
        self.failures = failures
        classes = ", ".join(sorted(failures))
        super().__init__(f"Event creation failed for all classes: {classes}")
