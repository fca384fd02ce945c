"""Data models for calendar events - eventcal.

``CalendarEvent`` is the only persisted entity. Its recurrence is a tagged
variant: only ``custom`` carries a payload, and the other variants refuse
extra fields, so a "daily rule with an interval" cannot be built.
"""

from __future__ import annotations

import datetime as dt
import logging
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer, field_validator

from eventcal.core.clock import today

from .date_math import DATETIME_PATTERN, format_date, parse_date, parse_time

logger = logging.getLogger(__name__)


class EventColor(str, Enum):
    """Colors an event can be tagged with."""

    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    PURPLE = "purple"
    YELLOW = "yellow"
    PINK = "pink"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class NoRecurrence(_Rule):
    kind: Literal["none"] = "none"


class DailyRecurrence(_Rule):
    kind: Literal["daily"] = "daily"


class WeeklyRecurrence(_Rule):
    kind: Literal["weekly"] = "weekly"


class MonthlyRecurrence(_Rule):
    kind: Literal["monthly"] = "monthly"


class CustomRecurrence(_Rule):
    """Repeat every ``interval_days`` days."""

    kind: Literal["custom"] = "custom"
    interval_days: int = 1

    @field_validator("interval_days", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Any) -> int:
        # Non-positive or unreadable intervals would never advance the series.
        try:
            interval = int(value)
        except (TypeError, ValueError):
            return 1
        return interval if interval >= 1 else 1


RecurrenceRule = Annotated[
    Union[NoRecurrence, DailyRecurrence, WeeklyRecurrence, MonthlyRecurrence, CustomRecurrence],
    Field(discriminator="kind"),
]

_RULE_ADAPTER: TypeAdapter[RecurrenceRule] = TypeAdapter(RecurrenceRule)

RECURRENCE_LABELS: dict[str, str] = {
    "none": "No Repeat",
    "daily": "Daily",
    "weekly": "Weekly",
    "monthly": "Monthly",
    "custom": "Custom",
}


def make_rule(kind: Optional[str], interval_days: Any = None) -> RecurrenceRule:
    """Build a recurrence rule from its persisted tag.

    Unknown or missing tags fall back to ``none`` so a bad record can never
    expand indefinitely.
    """
    if kind == "custom":
        return CustomRecurrence(interval_days=1 if interval_days is None else interval_days)
    if kind in ("daily", "weekly", "monthly", "none"):
        return _RULE_ADAPTER.validate_python({"kind": kind})
    if kind is not None:
        logger.warning("Unknown recurrence %r treated as none", kind)
    return NoRecurrence()


def _coerce_color(value: Any) -> EventColor:
    try:
        return EventColor(value)
    except ValueError:
        if value is not None:
            logger.warning("Unknown color %r treated as blue", value)
        return EventColor.BLUE


class CalendarEvent(BaseModel):
    """Calendar event: a persisted root or a derived occurrence."""

    id: str = Field(..., min_length=1, description="Event ID")
    title: str = Field(..., min_length=1, description="Event title")
    description: str = Field(default="", description="Free-form description")

    date: dt.date = Field(..., description="Calendar date, YYYY-MM-DD")
    time: str = Field(..., description="Wall-clock time, HH:mm")
    color: EventColor = Field(default=EventColor.BLUE)
    recurrence: RecurrenceRule = Field(default_factory=NoRecurrence)

    created_at: datetime = Field(..., description="Creation time, set once")
    series_root_id: Optional[str] = Field(
        default=None, description="Root event id for derived occurrences"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("time")
    @classmethod
    def _validate_time(cls, value: str) -> str:
        parse_time(value)
        return value

    @field_serializer("date")
    def serialize_date(self, value: dt.date) -> str:
        return format_date(value)

    @property
    def is_root(self) -> bool:
        return self.series_root_id is None

    @property
    def is_recurring(self) -> bool:
        """True for derived occurrences (the persisted ``isRecurring`` flag)."""
        return self.series_root_id is not None

    @property
    def date_key(self) -> str:
        return format_date(self.date)

    @property
    def start(self) -> datetime:
        """Combined date and time as a naive datetime."""
        return datetime.combine(self.date, parse_time(self.time))

    @property
    def datetime_text(self) -> str:
        return format_date(self.start, DATETIME_PATTERN)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record shape."""
        record: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date_key,
            "time": self.time,
            "description": self.description,
            "color": self.color.value,
            "recurrence": self.recurrence.kind,
            "datetime": self.datetime_text,
            "createdAt": self.created_at.isoformat(),
            "isRecurring": self.is_recurring,
        }
        if isinstance(self.recurrence, CustomRecurrence):
            record["customInterval"] = self.recurrence.interval_days
        if self.series_root_id is not None:
            record["parentId"] = self.series_root_id
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> CalendarEvent:
        """Build an event from a persisted record.

        Raises:
            ValueError: If a required field is missing or malformed
                (pydantic's ValidationError is a ValueError)
        """
        if not isinstance(record, dict):
            raise ValueError("event record must be an object")

        created_raw = record.get("createdAt")
        return cls(
            id=record.get("id"),
            title=record.get("title"),
            description=record.get("description") or "",
            date=parse_date(record.get("date")),
            time=record.get("time"),
            color=_coerce_color(record.get("color")),
            recurrence=make_rule(record.get("recurrence"), record.get("customInterval")),
            created_at=datetime.fromisoformat(created_raw) if created_raw else datetime.min,
            series_root_id=record.get("parentId"),
        )


class EventDraft(BaseModel):
    """Create/update payload from the form boundary.

    Fields stay raw text so that invalid input can be reported per field
    instead of failing construction.
    """

    title: str = ""
    date: str = Field(default_factory=lambda: format_date(today()))
    time: str = "09:00"
    description: str = ""
    color: str = EventColor.BLUE.value
    recurrence: str = "none"
    custom_interval: Optional[int] = 1

    @classmethod
    def for_date(cls, day: dt.date, **kwargs: Any) -> EventDraft:
        """Blank draft pre-filled with ``day`` (clicking an empty grid cell)."""
        return cls(date=format_date(day), **kwargs)

    @classmethod
    def from_event(cls, event: CalendarEvent) -> EventDraft:
        """Draft pre-filled from an existing event (opening the edit form)."""
        interval = (
            event.recurrence.interval_days if isinstance(event.recurrence, CustomRecurrence) else 1
        )
        return cls(
            title=event.title,
            date=event.date_key,
            time=event.time,
            description=event.description,
            color=event.color.value,
            recurrence=event.recurrence.kind,
            custom_interval=interval,
        )

    def validation_errors(self) -> dict[str, str]:
        """Return field-keyed messages for every invalid field."""
        errors: dict[str, str] = {}
        if not self.title.strip():
            errors["title"] = "Title is required"
        if not self.date:
            errors["date"] = "Date is required"
        else:
            try:
                parse_date(self.date)
            except ValueError:
                errors["date"] = "Date must be YYYY-MM-DD"
        if not self.time:
            errors["time"] = "Time is required"
        else:
            try:
                parse_time(self.time)
            except ValueError:
                errors["time"] = "Time must be HH:mm"
        if self.color not in {c.value for c in EventColor}:
            errors["color"] = "Unknown color"
        return errors

    def build_event(self, event_id: str, created_at: datetime) -> CalendarEvent:
        """Materialize a root event. Call ``validation_errors`` first."""
        return CalendarEvent(
            id=event_id,
            title=self.title,
            description=self.description,
            date=parse_date(self.date),
            time=self.time,
            color=EventColor(self.color),
            recurrence=make_rule(self.recurrence, self.custom_interval),
            created_at=created_at,
        )
