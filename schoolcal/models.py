"""
Pydantic models for calendar events, forms, and the viewing identity.

Provides parsing for:
- CalendarEvent responses from the Events API
- EventForm input for event creation
- EventUpdate partial input for edits
- Viewer identity supplied by the auth context

Design:
- Enums are str-valued so they serialize straight into API payloads
- Legacy creator fields (creator_name, creator_role) are still accepted
- A missing status from the API is read as pending
"""

import enum
from datetime import date, datetime, timezone
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TIMEZONE = "Asia/Kolkata"


# ============================================================================
# Enums
# ============================================================================


class EventType(str, enum.Enum):
    """Distribution target of an event."""
    SCHOOL_WIDE = "school_wide"
    CLASS_SPECIFIC = "class_specific"
    TEACHER_SPECIFIC = "teacher_specific"


class EventCategory(str, enum.Enum):
    """Event category shown as a calendar badge."""
    GENERAL = "general"
    ACADEMIC = "academic"
    SPORTS = "sports"
    CULTURAL = "cultural"
    HOLIDAY = "holiday"
    EXAM = "exam"
    MEETING = "meeting"
    OTHER = "other"


class EventStatus(str, enum.Enum):
    """Approval status of an event."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, enum.Enum):
    """Roles known to the dashboard."""
    ADMIN = "admin"
    PRINCIPAL = "principal"
    TEACHER = "teacher"
    PARENT = "parent"
    STUDENT = "student"


# ============================================================================
# Identity
# ============================================================================


class Viewer(BaseModel):
    """The signed-in user on whose behalf the service acts."""

    id: str
    role: str
    full_name: Optional[str] = None

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        return v.strip().lower()


class Creator(BaseModel):
    id: str
    role: str
    full_name: Optional[str] = None


# ============================================================================
# Event
# ============================================================================


class CalendarEvent(BaseModel):
    """
    A calendar event as stored by the Events API.

    Attributes:
        id: Store-assigned identifier
        event_date: UTC instant whose local day (in ``timezone``) is the event day
        start_time / end_time: HH:MM:SS wall-clock strings
        status: Approval status; pending when the API omits it
        created_by: Creator id, captured at creation
        rejection_reason: Reviewer note, only set for rejected events
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str
    title: str
    description: str = ""
    event_date: datetime
    event_date_ist: Optional[str] = None
    event_type: EventType
    event_category: EventCategory = EventCategory.GENERAL
    is_single_day: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE
    class_division_id: Optional[str] = None
    class_division_ids: Optional[List[str]] = None
    status: EventStatus = EventStatus.PENDING
    created_by: Optional[str] = None
    creator: Optional[Creator] = None
    creator_name: Optional[str] = None
    creator_role: Optional[str] = None
    created_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    class_info: Optional[dict] = None

    @field_validator("event_date")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC and normalize aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return EventStatus.PENDING if v is None else v

    @property
    def creator_id(self) -> Optional[str]:
        """Id of the creator, preferring the expanded creator object."""
        if self.creator is not None:
            return self.creator.id
        return self.created_by

    @property
    def creator_display_name(self) -> Optional[str]:
        if self.creator is not None and self.creator.full_name:
            return self.creator.full_name
        return self.creator_name

    @property
    def target_class_ids(self) -> List[str]:
        if self.class_division_ids:
            return list(self.class_division_ids)
        if self.class_division_id:
            return [self.class_division_id]
        return []

    @property
    def is_full_day(self) -> bool:
        """Full-day events carry the 00:00:00-23:59:59 sentinels or no times at all."""
        if self.start_time is None and self.end_time is None:
            return True
        return self.start_time == "00:00:00" and self.end_time == "23:59:59"


# ============================================================================
# Input Forms
# ============================================================================


class EventForm(BaseModel):
    """
    Event creation input as entered in the dashboard.

    Times are local (deployment timezone) wall-clock strings. They may be
    omitted for full-day events. The date, type and category are checked
    when the event is composed, not here.
    """

    title: str
    description: str
    event_date: Union[date, str]
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_full_day: bool = False
    event_type: Union[EventType, str] = EventType.SCHOOL_WIDE
    event_category: Union[EventCategory, str] = EventCategory.GENERAL
    class_division_ids: List[str] = Field(default_factory=list)


class EventUpdate(BaseModel):
    """Partial edit of an existing event. Unset fields are left unchanged."""

    title: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[Union[date, str]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_full_day: Optional[bool] = None
    event_type: Optional[Union[EventType, str]] = None
    event_category: Optional[Union[EventCategory, str]] = None
    class_division_ids: Optional[List[str]] = None

    def touches_schedule(self) -> bool:
        """Whether any date/time field is part of this edit."""
        fields = self.model_fields_set
        return bool(fields & {"event_date", "start_time", "end_time", "is_full_day"})

    def touches_targeting(self) -> bool:
        return bool(self.model_fields_set & {"event_type", "class_division_ids"})
