"""
Calendar event lifecycle service.

Composes time composition, distribution planning, the approval state
machine and visibility filtering into the operations the dashboard calls:

- create (with multi-class fan-out)
- edit
- approve / reject
- delete
- every listing entry point, all filtered by the same visibility rule

All guards run here before any request is sent; the dashboard only
enables or disables buttons.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Union

from schoolcal import approval
from schoolcal.api_client import EventsApiClient
from schoolcal.calendar_view import display_date
from schoolcal.config import FAN_OUT_BATCHED, FAN_OUT_MODES, FAN_OUT_PER_CLASS
from schoolcal.distribution import (
    TARGETING_FORBIDDEN,
    MultiClass,
    coerce_event_type,
    resolve,
    targeting_rule,
)
from schoolcal.exceptions import (
    FanOutError,
    IllegalTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from schoolcal.models import (
    DEFAULT_TIMEZONE,
    CalendarEvent,
    EventCategory,
    EventForm,
    EventStatus,
    EventUpdate,
    Viewer,
)
from schoolcal.result import ApiFailure
from schoolcal.time_compositor import UPCOMING_DAYS, compose, local_today, upcoming_window
from schoolcal.visibility import filter_visible, pending_queue


logger = logging.getLogger("schoolcal.service")
integrity_logger = logging.getLogger("schoolcal.integrity")


# ============================================================================
# Outcomes
# ============================================================================


@dataclass
class CreateOutcome:
    """
    Result of a create submission.

    Attributes:
        events: Stored events reported by the API
        status: Status the new events start in
        class_ids: Classes the submission targeted (empty if untargeted)
        failures: Per-class failures of a per-class fan-out
    """
    events: List[CalendarEvent]
    status: EventStatus
    class_ids: List[str] = field(default_factory=list)
    failures: Dict[str, ApiFailure] = field(default_factory=dict)

    @property
    def auto_approved(self) -> bool:
        return self.status == EventStatus.APPROVED

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)

    @property
    def message(self) -> str:
        """User-facing confirmation text."""
        created = len(self.class_ids) - len(self.failures)
        if self.class_ids:
            subject = f"Event created successfully for {created} class(es)"
        else:
            subject = "Event created successfully"

        if self.auto_approved:
            text = subject.replace("created successfully", "created and approved successfully")
        else:
            text = f"{subject}. Waiting for approval."

        if self.failures:
            failed = ", ".join(sorted(self.failures))
            text = f"{text.rstrip('.')}. Failed for: {failed}"
        return text


# ============================================================================
# Helpers
# ============================================================================


def _require_text(value: Optional[str], field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field_name.capitalize()} is required", field=field_name)
    return text


def _coerce_category(category: Union[EventCategory, str]) -> EventCategory:
    try:
        return EventCategory(category)
    except ValueError as e:
        raise ValidationError(
            f"Unknown event category: {category!r}", field="event_category"
        ) from e


def _stored_status(events: List[CalendarEvent], expected: EventStatus) -> EventStatus:
    """Status the server stored the new events in, if it reported one."""
    statuses = {event.status for event in events}
    if len(statuses) == 1:
        return statuses.pop()
    return expected


# ============================================================================
# EventLifecycleService Class
# ============================================================================


class EventLifecycleService:
    """
    Event lifecycle operations on behalf of one viewer.

    Attributes:
        api_client: Events API client
        viewer: Signed-in user the operations act for
        tz_name: Deployment timezone for dates and "today"
        fan_out: "batched" or "per_class" multi-class submission
    """

    def __init__(
        self,
        api_client: EventsApiClient,
        viewer: Viewer,
        tz_name: str = DEFAULT_TIMEZONE,
        fan_out: str = FAN_OUT_BATCHED,
    ):
        if fan_out not in FAN_OUT_MODES:
            raise ValueError(f"Unknown fan_out mode: {fan_out}")
        self._api = api_client
        self._viewer = viewer
        self._tz_name = tz_name
        self._fan_out = fan_out

    @classmethod
    def from_config(
        cls,
        config,
        viewer: Viewer,
        api_client: Optional[EventsApiClient] = None,
    ) -> "EventLifecycleService":
        """Build a service from a ``ClientConfig``."""
        return cls(
            api_client=api_client or EventsApiClient.from_config(config),
            viewer=viewer,
            tz_name=config.timezone,
            fan_out=config.fan_out,
        )

    @property
    def viewer(self) -> Viewer:
        return self._viewer

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _require_privileged(self, action: str) -> None:
        if not approval.is_privileged(self._viewer.role):
            raise PermissionDeniedError(action, self._viewer.role)

    def _log_illegal(self, error: IllegalTransitionError) -> None:
        integrity_logger.error(
            "Illegal transition attempted by %s (%s): %s",
            self._viewer.id, self._viewer.role, error.message,
        )

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create_event(self, form: EventForm) -> CreateOutcome:
        """
        Validate, compose and submit a new event.

        Args:
            form: Event form as entered

        Returns:
            CreateOutcome describing the created events and their status

        Raises:
            ValidationError: On missing title/description or bad date/time
            MissingTargetError: If a class-specific event has no classes
            NetworkError / ApiError: If the (single or batched) request failed
            FanOutError: If every per-class request failed
        """
        title = _require_text(form.title, "title")
        description = _require_text(form.description, "description")
        composed = compose(
            form.event_date,
            form.start_time,
            form.end_time,
            is_full_day=form.is_full_day,
            tz_name=self._tz_name,
        )
        event_type = coerce_event_type(form.event_type)
        category = _coerce_category(form.event_category)
        plan = resolve(event_type, form.class_division_ids)
        status = approval.initial_status(self._viewer.role)

        payload: Dict[str, Any] = {
            "title": title,
            "description": description,
            "event_date": composed.event_date_iso,
            "event_type": event_type.value,
            "event_category": category.value,
            "is_single_day": True,
            "start_time": composed.start_time,
            "end_time": composed.end_time,
            "timezone": self._tz_name,
        }

        if isinstance(plan, MultiClass) and self._fan_out == FAN_OUT_PER_CLASS:
            outcome = await self._create_per_class(payload, plan, status)
        else:
            payload.update(plan.payload_fields())
            events = (await self._api.create_event(payload)).unwrap()
            outcome = CreateOutcome(
                events=events,
                status=_stored_status(events, status),
                class_ids=list(plan.class_ids),
            )

        logger.info(
            "Created %d event(s) '%s' on %s as %s (%s)",
            len(outcome.events), title, form.event_date, outcome.status.value,
            self._viewer.role,
        )
        return outcome

    async def _create_per_class(
        self,
        payload: Dict[str, Any],
        plan: MultiClass,
        status: EventStatus,
    ) -> CreateOutcome:
        """Issue one create request per class and report failures per class."""

        async def create_for(class_id: str):
            body = dict(payload, **plan.single_payload_fields(class_id))
            return class_id, await self._api.create_event(body)

        results = await asyncio.gather(*(create_for(c) for c in plan.class_ids))

        events: List[CalendarEvent] = []
        failures: Dict[str, ApiFailure] = {}
        for class_id, result in results:
            if result.is_ok:
                events.extend(result.value)
            else:
                failures[class_id] = result.failure

        if failures and len(failures) == len(plan.class_ids):
            if len(failures) == 1:
                raise next(iter(failures.values())).to_exception()
            raise FanOutError(failures)
        if failures:
            logger.warning(
                "Partial fan-out: %d of %d class(es) failed (%s)",
                len(failures), len(plan.class_ids), ", ".join(sorted(failures)),
            )
        return CreateOutcome(
            events=events,
            status=_stored_status(events, status),
            class_ids=list(plan.class_ids),
            failures=failures,
        )

    # -------------------------------------------------------------------------
    # Edit / Delete
    # -------------------------------------------------------------------------

    async def get_event(self, event_id: str) -> CalendarEvent:
        return (await self._api.get_event(event_id)).unwrap()

    async def update_event(self, event_id: str, update: EventUpdate) -> CalendarEvent:
        """
        Apply a partial edit to an event.

        Date/time fields are recomposed together and targeting is
        re-resolved whenever the event type or classes change. Editing an
        approved event does not send it back for approval.

        Raises:
            PermissionDeniedError: If a non-privileged viewer edits someone else's event
            IllegalTransitionError: If the event was rejected
            ValidationError / MissingTargetError: On invalid changes
        """
        current = await self.get_event(event_id)

        if not approval.is_privileged(self._viewer.role) and current.creator_id != self._viewer.id:
            raise PermissionDeniedError(approval.ACTION_EDIT, self._viewer.role)
        if not approval.can_edit(current.status):
            error = IllegalTransitionError(event_id, current.status.value, approval.ACTION_EDIT)
            self._log_illegal(error)
            raise error

        fields = update.model_fields_set
        changes: Dict[str, Any] = {}

        if "title" in fields:
            changes["title"] = _require_text(update.title, "title")
        if "description" in fields:
            changes["description"] = _require_text(update.description, "description")
        if "event_category" in fields and update.event_category is not None:
            changes["event_category"] = _coerce_category(update.event_category).value

        if update.touches_schedule():
            if update.is_full_day is not None:
                is_full_day = update.is_full_day
            elif fields & {"start_time", "end_time"}:
                # New clock times turn a full-day event into a timed one
                is_full_day = False
            else:
                is_full_day = current.is_full_day
            composed = compose(
                update.event_date or display_date(current),
                update.start_time if "start_time" in fields else current.start_time,
                update.end_time if "end_time" in fields else current.end_time,
                is_full_day=is_full_day,
                tz_name=current.timezone,
            )
            changes.update(
                event_date=composed.event_date_iso,
                start_time=composed.start_time,
                end_time=composed.end_time,
                is_single_day=True,
            )

        if update.touches_targeting():
            event_type = coerce_event_type(update.event_type or current.event_type)
            class_ids = update.class_division_ids
            if class_ids is None:
                forbidden = targeting_rule(event_type) == TARGETING_FORBIDDEN
                class_ids = [] if forbidden else current.target_class_ids
            plan = resolve(event_type, class_ids)
            changes["event_type"] = event_type.value
            if isinstance(plan, MultiClass) and len(plan.class_ids) > 1:
                changes["class_division_ids"] = list(plan.class_ids)
            else:
                changes["class_division_id"] = plan.class_ids[0] if plan.class_ids else None

        if not changes:
            logger.debug("No changes for event %s", event_id)
            return current

        updated = (await self._api.update_event(event_id, changes)).unwrap()
        logger.info("Updated event %s (%s)", event_id, ", ".join(sorted(changes)))
        return updated

    async def delete_event(self, event_id: str) -> None:
        """Remove an event. Only admins and principals may delete."""
        self._require_privileged("delete")
        (await self._api.delete_event(event_id)).unwrap()
        logger.info("Deleted event %s", event_id)

    # -------------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------------

    async def _review(self, event_id: str, action: str, reason: Optional[str] = None) -> CalendarEvent:
        self._require_privileged(action)
        current = await self.get_event(event_id)
        try:
            target = approval.transition(event_id, current.status, action, self._viewer.role)
        except IllegalTransitionError as e:
            self._log_illegal(e)
            raise

        if action == approval.ACTION_APPROVE:
            result = await self._api.approve_event(event_id)
        else:
            result = await self._api.reject_event(event_id, reason)
        updated = result.unwrap()

        if updated is None:
            changes: Dict[str, Any] = {"status": target}
            if target == EventStatus.APPROVED:
                changes["approved_by"] = self._viewer.id
            else:
                changes["rejection_reason"] = reason
            updated = current.model_copy(update=changes)

        logger.info("Event %s %s by %s", event_id, target.value, self._viewer.id)
        return updated

    async def approve(self, event_id: str) -> CalendarEvent:
        """
        Approve a pending event.

        Raises:
            PermissionDeniedError: If the viewer is not an admin or principal
            IllegalTransitionError: If the event is not pending
        """
        return await self._review(event_id, approval.ACTION_APPROVE)

    async def reject(self, event_id: str, reason: str) -> CalendarEvent:
        """
        Reject a pending event with a reason.

        Raises:
            ValidationError: If the reason is blank
            PermissionDeniedError: If the viewer is not an admin or principal
            IllegalTransitionError: If the event is not pending
        """
        self._require_privileged(approval.ACTION_REJECT)
        reason = _require_text(reason, "rejection_reason")
        return await self._review(event_id, approval.ACTION_REJECT, reason)

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    def list_visible(
        self,
        events: List[CalendarEvent],
        viewer: Optional[Viewer] = None,
    ) -> List[CalendarEvent]:
        """Filter raw events down to what the viewer may see."""
        return filter_visible(events, viewer or self._viewer)

    async def list_events(self, **filters: Any) -> List[CalendarEvent]:
        filters.setdefault("use_ist", True)
        events = (await self._api.list_events(**filters)).unwrap()
        return self.list_visible(events)

    async def list_events_in_range(
        self,
        start_date: Union[date, str],
        end_date: Union[date, str],
        **filters: Any,
    ) -> List[CalendarEvent]:
        return await self.list_events(start_date=start_date, end_date=end_date, **filters)

    async def list_today(self, **filters: Any) -> List[CalendarEvent]:
        today = local_today(self._tz_name)
        return await self.list_events_in_range(today, today, **filters)

    async def list_upcoming(self, days: int = UPCOMING_DAYS, **filters: Any) -> List[CalendarEvent]:
        start, end = upcoming_window(days, self._tz_name)
        return await self.list_events_in_range(start, end, **filters)

    async def list_class_events(self, class_division_id: str, **filters: Any) -> List[CalendarEvent]:
        events = (await self._api.list_class_events(class_division_id, **filters)).unwrap()
        return self.list_visible(events)

    async def list_teacher_events(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[CalendarEvent]:
        result = await self._api.list_teacher_events(start_date=start_date, end_date=end_date)
        return self.list_visible(result.unwrap())

    async def list_parent_events(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[CalendarEvent]:
        result = await self._api.list_parent_events(start_date=start_date, end_date=end_date)
        return self.list_visible(result.unwrap())

    async def pending_approvals(self, **filters: Any) -> List[CalendarEvent]:
        """
        The approvals queue: every pending event, regardless of creator.

        This is a separate query, not a filter over the general listing.
        """
        self._require_privileged("review")
        filters["status"] = EventStatus.PENDING.value
        events = (await self._api.list_events(**filters)).unwrap()
        return pending_queue(events)
