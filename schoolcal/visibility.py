"""
Role-based visibility of calendar events.

Every listing goes through ``is_visible``; the approvals queue is a
separate query over pending events and does not use it.
"""

from typing import Iterable, List

from schoolcal.approval import is_privileged
from schoolcal.models import CalendarEvent, EventStatus, Role, Viewer


def is_visible(event: CalendarEvent, viewer: Viewer) -> bool:
    """
    Whether a viewer may see an event in a general listing.

    - admin / principal: approved events only
    - teacher: approved events plus their own pending events
    - anyone else: approved events only
    """
    if event.status == EventStatus.APPROVED:
        return True
    if is_privileged(viewer.role):
        return False
    if viewer.role == Role.TEACHER.value:
        return event.status == EventStatus.PENDING and event.creator_id == viewer.id
    return False


def filter_visible(events: Iterable[CalendarEvent], viewer: Viewer) -> List[CalendarEvent]:
    return [event for event in events if is_visible(event, viewer)]


def pending_queue(events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
    """Pending events awaiting review, regardless of creator."""
    return [event for event in events if event.status == EventStatus.PENDING]
