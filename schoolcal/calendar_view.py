"""
Calendar display helpers.

Converts API events into the flat rows the calendar and agenda widgets
render, and provides the date filters those widgets use. Dates are the
event's local calendar day, never the UTC date of ``event_date``.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from schoolcal.models import CalendarEvent, EventType
from schoolcal.time_compositor import local_day_of


KIND_SCHOOL = "school"
KIND_CLASS = "class"

_IST_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


@dataclass(frozen=True)
class DisplayEvent:
    id: str
    title: str
    description: str
    day: date
    start_time: str
    end_time: str
    kind: str
    category: str
    status: str
    class_label: Optional[str] = None
    creator_name: Optional[str] = None


def display_date(event: CalendarEvent) -> date:
    """
    Local calendar day of an event.

    The server's ``event_date_ist`` already carries local wall-clock
    numbers, so only its date prefix is read; otherwise ``event_date`` is
    converted into the event's timezone.
    """
    if event.event_date_ist:
        match = _IST_DATE_PREFIX.match(event.event_date_ist)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return date(year, month, day)
    return local_day_of(event.event_date, event.timezone)


def _class_label(event: CalendarEvent) -> Optional[str]:
    info = event.class_info or {}
    if info.get("class_level") and info.get("division"):
        return f"{info['class_level']} - Section {info['division']}"
    return None


def to_display(event: CalendarEvent) -> DisplayEvent:
    kind = KIND_CLASS if event.event_type == EventType.CLASS_SPECIFIC else KIND_SCHOOL
    return DisplayEvent(
        id=event.id,
        title=event.title,
        description=event.description,
        day=display_date(event),
        start_time=(event.start_time or "00:00")[:5],
        end_time=(event.end_time or "23:59")[:5],
        kind=kind,
        category=event.event_category.value,
        status=event.status.value,
        class_label=_class_label(event),
        creator_name=event.creator_display_name,
    )


def sort_by_start(events: Iterable[DisplayEvent]) -> List[DisplayEvent]:
    return sorted(events, key=lambda e: (e.day, e.start_time))


def events_on(events: Iterable[DisplayEvent], day: date) -> List[DisplayEvent]:
    return [e for e in events if e.day == day]


def events_between(events: Iterable[DisplayEvent], start: date, end: date) -> List[DisplayEvent]:
    """Events whose day falls within [start, end], inclusive."""
    return [e for e in events if start <= e.day <= end]


def filter_by_kind(events: Iterable[DisplayEvent], kind: str) -> List[DisplayEvent]:
    return [e for e in events if e.kind == kind]
