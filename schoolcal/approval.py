"""
Approval state machine for calendar events.

    (create, privileged)  -> approved
    (create, other role)  -> pending
    pending --approve-->     approved   (privileged reviewer)
    pending --reject-->      rejected   (privileged reviewer)

approved and rejected are terminal.
"""

from typing import Union

from schoolcal.exceptions import IllegalTransitionError, PermissionDeniedError
from schoolcal.models import EventStatus, Role


ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
ACTION_EDIT = "edit"

PRIVILEGED_ROLES = frozenset({Role.ADMIN.value, Role.PRINCIPAL.value})
TERMINAL_STATES = frozenset({EventStatus.APPROVED, EventStatus.REJECTED})
EDITABLE_STATES = frozenset({EventStatus.PENDING, EventStatus.APPROVED})

_TRANSITIONS = {
    (EventStatus.PENDING, ACTION_APPROVE): EventStatus.APPROVED,
    (EventStatus.PENDING, ACTION_REJECT): EventStatus.REJECTED,
}


def _role_value(role: Union[Role, str, None]) -> str:
    if isinstance(role, Role):
        return role.value
    return (role or "").strip().lower()


def is_privileged(role: Union[Role, str, None]) -> bool:
    """Admins and principals review events and auto-approve their own."""
    return _role_value(role) in PRIVILEGED_ROLES


def initial_status(creator_role: Union[Role, str, None]) -> EventStatus:
    """Status a newly created event starts in."""
    return EventStatus.APPROVED if is_privileged(creator_role) else EventStatus.PENDING


def is_terminal(status: Union[EventStatus, str]) -> bool:
    return EventStatus(status) in TERMINAL_STATES


def can_edit(status: Union[EventStatus, str]) -> bool:
    return EventStatus(status) in EDITABLE_STATES


def transition(
    event_id: str,
    current: Union[EventStatus, str],
    action: str,
    actor_role: Union[Role, str, None],
) -> EventStatus:
    """
    Apply a review action and return the resulting status.

    Args:
        event_id: Event being reviewed (for error reporting)
        current: Current status of the event
        action: "approve" or "reject"
        actor_role: Role of the reviewer

    Raises:
        PermissionDeniedError: If the reviewer is not privileged
        IllegalTransitionError: If the event is not pending
    """
    if not is_privileged(actor_role):
        raise PermissionDeniedError(action, _role_value(actor_role))

    status = EventStatus(current)
    target = _TRANSITIONS.get((status, action))
    if target is None:
        raise IllegalTransitionError(event_id, status.value, action)
    return target
