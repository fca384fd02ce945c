"""Unit tests for eventcal.calendar.models."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from eventcal.calendar.models import (
    RECURRENCE_LABELS,
    CalendarEvent,
    CustomRecurrence,
    DailyRecurrence,
    EventColor,
    EventDraft,
    NoRecurrence,
    make_rule,
)

pytestmark = pytest.mark.unit


class TestRecurrenceRules:
    def test_make_rule_for_each_tag(self):
        for kind in ("none", "daily", "weekly", "monthly", "custom"):
            assert make_rule(kind).kind == kind

    def test_make_rule_unknown_tag_is_none(self):
        assert isinstance(make_rule("yearly"), NoRecurrence)
        assert isinstance(make_rule(None), NoRecurrence)

    def test_custom_interval_kept(self):
        assert make_rule("custom", 5) == CustomRecurrence(interval_days=5)

    @pytest.mark.parametrize("raw", [0, -3, "abc", None])
    def test_custom_interval_coerced_to_at_least_one(self, raw):
        assert CustomRecurrence(interval_days=raw).interval_days == 1

    def test_non_custom_variants_reject_payload(self):
        with pytest.raises(ValidationError):
            DailyRecurrence(interval_days=2)

    def test_labels_cover_every_tag(self):
        assert RECURRENCE_LABELS["none"] == "No Repeat"
        assert set(RECURRENCE_LABELS) == {"none", "daily", "weekly", "monthly", "custom"}


class TestCalendarEvent:
    def test_derived_properties(self, make_event):
        event = make_event(day=date(2024, 5, 1), time="09:05")

        assert event.is_root
        assert not event.is_recurring
        assert event.date_key == "2024-05-01"
        assert event.start == datetime(2024, 5, 1, 9, 5)
        assert event.datetime_text == "2024-05-01T09:05"

    def test_invalid_time_rejected(self, make_event):
        with pytest.raises(ValidationError):
            make_event(time="25:00")

    def test_empty_title_rejected(self, make_event):
        with pytest.raises(ValidationError):
            make_event(title="")

    def test_color_labels(self):
        assert EventColor.PURPLE.label == "Purple"

    def test_to_record_shape_for_root(self, make_event):
        record = make_event(event_id="event-1", recurrence=CustomRecurrence(interval_days=4)).to_record()

        assert record["id"] == "event-1"
        assert record["date"] == "2024-05-01"
        assert record["datetime"] == "2024-05-01T09:00"
        assert record["recurrence"] == "custom"
        assert record["customInterval"] == 4
        assert record["isRecurring"] is False
        assert "parentId" not in record

    def test_to_record_marks_occurrence(self, make_event):
        occurrence = make_event(event_id="event-1").model_copy(
            update={"id": "event-1-1", "series_root_id": "event-1"}
        )
        record = occurrence.to_record()

        assert record["parentId"] == "event-1"
        assert record["isRecurring"] is True
        assert "customInterval" not in record

    def test_record_roundtrip(self, make_event):
        event = make_event(color="green", recurrence=DailyRecurrence(), description="notes")
        assert CalendarEvent.from_record(event.to_record()) == event

    def test_from_record_tolerates_unknown_color_and_recurrence(self):
        event = CalendarEvent.from_record(
            {
                "id": "e1",
                "title": "Lunch",
                "date": "2024-05-01",
                "time": "12:00",
                "color": "orange",
                "recurrence": "yearly",
            }
        )

        assert event.color is EventColor.BLUE
        assert isinstance(event.recurrence, NoRecurrence)
        assert event.created_at == datetime.min

    def test_from_record_rejects_bad_date(self):
        with pytest.raises(ValueError):
            CalendarEvent.from_record({"id": "e1", "title": "x", "date": "05/01/2024", "time": "09:00"})

    def test_from_record_rejects_non_dict(self):
        with pytest.raises(ValueError):
            CalendarEvent.from_record(["not", "a", "record"])


class TestEventDraft:
    def test_defaults(self):
        draft = EventDraft()
        assert draft.time == "09:00"
        assert draft.color == "blue"
        assert draft.recurrence == "none"

    def test_date_defaults_to_today(self, monkeypatch):
        monkeypatch.setenv("EVENTCAL_TEST_TIME", "2024-05-15T10:30:00")
        assert EventDraft(title="x").date == "2024-05-15"
        assert EventDraft(title="x").validation_errors() == {}

    def test_for_date_prefills_date(self):
        assert EventDraft.for_date(date(2024, 5, 9)).date == "2024-05-09"

    def test_validation_errors_per_field(self):
        errors = EventDraft(title="  ", date="2024-13-01", time="9am", color="teal").validation_errors()

        assert errors == {
            "title": "Title is required",
            "date": "Date must be YYYY-MM-DD",
            "time": "Time must be HH:mm",
            "color": "Unknown color",
        }

    def test_missing_date_and_time(self):
        errors = EventDraft(title="x", date="", time="").validation_errors()
        assert errors["date"] == "Date is required"
        assert errors["time"] == "Time is required"

    def test_valid_draft_builds_event(self):
        draft = EventDraft(
            title="Review", date="2024-05-02", time="14:30", color="red", recurrence="custom", custom_interval=10
        )
        assert draft.validation_errors() == {}

        event = draft.build_event("event-42", created_at=datetime(2024, 5, 1))
        assert event.id == "event-42"
        assert event.date == date(2024, 5, 2)
        assert event.color is EventColor.RED
        assert event.recurrence == CustomRecurrence(interval_days=10)
        assert event.is_root

    def test_from_event_roundtrip(self, make_event):
        event = make_event(recurrence=CustomRecurrence(interval_days=2), color="pink")
        draft = EventDraft.from_event(event)

        assert draft.recurrence == "custom"
        assert draft.custom_interval == 2
        assert draft.build_event(event.id, event.created_at) == event
