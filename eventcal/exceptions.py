"""Exception hierarchy for the eventcal engine.

Most engine operations are forgiving: deleting or
moving an unknown event is a no-op and corrupt storage loads as empty. The
exceptions below cover the cases that must reach the caller.
"""

from __future__ import annotations


class EventCalError(Exception):
    """Base exception for all eventcal errors."""


class EventValidationError(EventCalError):
    """A create/update payload was rejected.

    Raised when:
    - title, date or time is empty
    - date is not YYYY-MM-DD or time is not HH:mm
    - a derived occurrence is offered to the store as a root record

    ``errors`` maps the offending field name to a user-facing message so the
    form boundary can show it next to the field.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid event fields: {fields}")


class EventNotFoundError(EventCalError, KeyError):
    """An explicit lookup asked for an event id that is not stored."""

    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(event_id)

    def __str__(self) -> str:
        return f"Event not found: {self.event_id}"
