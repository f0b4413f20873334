"""
Event distribution planning.

Decides, from the event type and the selected classes, whether a
submission becomes one untargeted event or a class fan-out. Create and
edit flows both go through ``resolve`` so the targeting rules live in
one place.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from schoolcal.exceptions import MissingTargetError, ValidationError
from schoolcal.models import EventType


logger = logging.getLogger("schoolcal.distribution")

TARGETING_REQUIRED = "required"
TARGETING_FORBIDDEN = "forbidden"

_TARGETING_RULES = {
    EventType.SCHOOL_WIDE: TARGETING_FORBIDDEN,
    EventType.TEACHER_SPECIFIC: TARGETING_FORBIDDEN,
    EventType.CLASS_SPECIFIC: TARGETING_REQUIRED,
}


@dataclass(frozen=True)
class SingleTarget:
    """One event, optionally aimed at a single class."""
    target_class_id: Optional[str] = None

    @property
    def class_ids(self) -> Tuple[str, ...]:
        return (self.target_class_id,) if self.target_class_id else ()

    def payload_fields(self) -> Dict[str, Any]:
        if self.target_class_id:
            return {"class_division_id": self.target_class_id}
        return {}


@dataclass(frozen=True)
class MultiClass:
    """One logical event fanned out into one stored event per class."""
    class_ids: Tuple[str, ...]

    def payload_fields(self) -> Dict[str, Any]:
        return {"class_division_ids": list(self.class_ids)}

    def single_payload_fields(self, class_id: str) -> Dict[str, Any]:
        """Targeting fields for one per-class request."""
        return {"class_division_id": class_id}


DistributionPlan = Union[SingleTarget, MultiClass]


def coerce_event_type(event_type: Union[EventType, str]) -> EventType:
    """Read an event type, raising ValidationError for unknown values."""
    try:
        return EventType(event_type)
    except ValueError as e:
        raise ValidationError(f"Unknown event type: {event_type!r}", field="event_type") from e


def targeting_rule(event_type: Union[EventType, str]) -> str:
    """Whether class targeting is required or forbidden for an event type."""
    return _TARGETING_RULES[coerce_event_type(event_type)]


def _clean_ids(class_ids: Optional[Iterable[str]]) -> Tuple[str, ...]:
    seen = []
    for class_id in class_ids or ():
        class_id = (class_id or "").strip()
        if class_id and class_id not in seen:
            seen.append(class_id)
    return tuple(seen)


def resolve(
    event_type: Union[EventType, str],
    selected_class_ids: Optional[Iterable[str]] = None,
) -> DistributionPlan:
    """
    Build the distribution plan for an event.

    Args:
        event_type: Selected event type
        selected_class_ids: Classes picked in the form

    Returns:
        SingleTarget(None) for school-wide and teacher-specific events,
        MultiClass(ids) for class-specific events

    Raises:
        MissingTargetError: If a class-specific event has no classes
        ValidationError: If the event type is unknown
    """
    kind = coerce_event_type(event_type)
    class_ids = _clean_ids(selected_class_ids)

    if _TARGETING_RULES[kind] == TARGETING_FORBIDDEN:
        if class_ids:
            logger.warning(
                "Ignoring %d class id(s) supplied for %s event: %s",
                len(class_ids), kind.value, ", ".join(class_ids),
            )
        return SingleTarget(None)

    if not class_ids:
        raise MissingTargetError()
    return MultiClass(class_ids)
