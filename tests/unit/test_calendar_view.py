"""
Unit tests for calendar display helpers.
"""

from datetime import date

from schoolcal.calendar_view import (
    KIND_CLASS,
    KIND_SCHOOL,
    display_date,
    events_between,
    events_on,
    filter_by_kind,
    sort_by_start,
    to_display,
)


class TestDisplayDate:
    def test_local_day_from_utc_instant(self, make_event):
        # 20:00 UTC on the 9th is 01:30 IST on the 10th
        event = make_event(event_date="2025-09-09T20:00:00Z")
        assert display_date(event) == date(2025, 9, 10)

    def test_ist_prefix_preferred(self, make_event):
        event = make_event(
            event_date="2025-09-09T20:00:00Z",
            event_date_ist="2025-09-10T01:30:00.000Z",
        )
        assert display_date(event) == date(2025, 9, 10)

    def test_unparseable_ist_falls_back(self, make_event):
        event = make_event(event_date="2025-09-10T04:30:00Z", event_date_ist="soon")
        assert display_date(event) == date(2025, 9, 10)

    def test_event_timezone_respected(self, make_event):
        event = make_event(event_date="2025-09-10T02:00:00Z", timezone="America/New_York")
        assert display_date(event) == date(2025, 9, 9)


class TestToDisplay:
    def test_school_event(self, make_event):
        row = to_display(make_event(id="evt_1", title="Assembly"))

        assert row.id == "evt_1"
        assert row.kind == KIND_SCHOOL
        assert (row.start_time, row.end_time) == ("10:00", "12:00")
        assert row.day == date(2025, 9, 10)
        assert row.category == "meeting"
        assert row.class_label is None

    def test_class_event_label(self, make_event):
        event = make_event(
            event_type="class_specific",
            class_division_id="g5a",
            class_info={"class_level": "Grade 5", "division": "A"},
        )

        row = to_display(event)

        assert row.kind == KIND_CLASS
        assert row.class_label == "Grade 5 - Section A"

    def test_missing_times_default_to_full_day(self, make_event):
        row = to_display(make_event(start_time=None, end_time=None))
        assert (row.start_time, row.end_time) == ("00:00", "23:59")

    def test_creator_name_from_creator_object(self, make_event):
        event = make_event(creator={"id": "usr_admin", "role": "admin", "full_name": "Asha Admin"})
        assert to_display(event).creator_name == "Asha Admin"


class TestFilters:
    def _rows(self, make_event):
        return [
            to_display(make_event(id="late", event_date="2025-09-10T08:30:00Z", start_time="14:00:00")),
            to_display(make_event(id="early", event_date="2025-09-10T03:30:00Z", start_time="09:00:00")),
            to_display(make_event(
                id="next_day", event_date="2025-09-11T04:30:00Z", event_type="class_specific",
            )),
        ]

    def test_sort_by_start(self, make_event):
        rows = sort_by_start(self._rows(make_event))
        assert [r.id for r in rows] == ["early", "late", "next_day"]

    def test_events_on(self, make_event):
        rows = events_on(self._rows(make_event), date(2025, 9, 10))
        assert {r.id for r in rows} == {"early", "late"}

    def test_events_between_inclusive(self, make_event):
        rows = events_between(self._rows(make_event), date(2025, 9, 11), date(2025, 9, 11))
        assert [r.id for r in rows] == ["next_day"]

    def test_filter_by_kind(self, make_event):
        rows = filter_by_kind(self._rows(make_event), KIND_CLASS)
        assert [r.id for r in rows] == ["next_day"]
