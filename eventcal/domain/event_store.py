"""Root event store and mutation commands for eventcal.

Only root events live here. Occurrences are derived by the recurrence
expander on every recompute and are addressed through their root: deleting
an occurrence deletes its whole series, and occurrences cannot be moved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import date, datetime
from typing import Optional

from eventcal.calendar.models import CalendarEvent, EventDraft, NoRecurrence
from eventcal.exceptions import EventNotFoundError, EventValidationError

logger = logging.getLogger(__name__)


class EventStore:
    """Root events keyed by id, in insertion order."""

    def __init__(self, events: Optional[Iterable[CalendarEvent]] = None) -> None:
        self._events: dict[str, CalendarEvent] = {}
        for event in events or ():
            if event.is_root:
                self._events[event.id] = event

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def __iter__(self) -> Iterator[CalendarEvent]:
        return iter(self.roots())

    def roots(self) -> list[CalendarEvent]:
        return list(self._events.values())

    def get(self, event_id: str) -> Optional[CalendarEvent]:
        return self._events.get(event_id)

    def require(self, event_id: str) -> CalendarEvent:
        """Return the root event, raising EventNotFoundError when missing."""
        event = self._events.get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def resolve_root_id(self, event_id: str) -> Optional[str]:
        """Map an event or occurrence id to the id of its stored root.

        Occurrence ids have the form ``{root_id}-{n}`` with ``n >= 1``; they
        only resolve when that root exists and actually recurs.
        """
        if event_id in self._events:
            return event_id
        root_id, sep, index = event_id.rpartition("-")
        if not sep or not index.isdigit() or int(index) < 1:
            return None
        root = self._events.get(root_id)
        if root is None or isinstance(root.recurrence, NoRecurrence):
            return None
        return root_id

    def new_event_id(self, now: datetime) -> str:
        """Allocate an unused ``event-{millis}`` id."""
        millis = int(now.timestamp() * 1000)
        while f"event-{millis}" in self._events:
            millis += 1
        return f"event-{millis}"

    def upsert(self, event: CalendarEvent) -> CalendarEvent:
        """Insert a new root or fully replace an existing one.

        The original ``created_at`` survives a replacement.

        Raises:
            EventValidationError: If ``event`` is a derived occurrence
        """
        if not event.is_root:
            raise EventValidationError(
                {"id": f"Occurrence {event.id} cannot be stored as a root event"}
            )

        existing = self._events.get(event.id)
        if existing is not None:
            event = event.model_copy(update={"created_at": existing.created_at})
            logger.debug("Replaced event %s", event.id)
        else:
            logger.debug("Inserted event %s", event.id)
        self._events[event.id] = event
        return event

    def create(self, draft: EventDraft, now: datetime) -> CalendarEvent:
        """Validate ``draft`` and insert it as a new root event.

        Raises:
            EventValidationError: With field-keyed messages; store unchanged
        """
        errors = draft.validation_errors()
        if errors:
            raise EventValidationError(errors)
        event = draft.build_event(self.new_event_id(now), created_at=now)
        return self.upsert(event)

    def update(self, event_id: str, draft: EventDraft, now: datetime) -> CalendarEvent:
        """Validate ``draft`` and overwrite the event addressed by ``event_id``.

        An occurrence id edits its series root and keeps the root's date. An
        unknown id is inserted as a new root under that id.

        Raises:
            EventValidationError: With field-keyed messages; store unchanged
        """
        errors = draft.validation_errors()
        if errors:
            raise EventValidationError(errors)

        root_id = self.resolve_root_id(event_id)
        if root_id is None:
            return self.upsert(draft.build_event(event_id, created_at=now))

        event = draft.build_event(root_id, created_at=now)
        if root_id != event_id:
            logger.info("Editing occurrence %s updates its series %s", event_id, root_id)
            event = event.model_copy(update={"date": self._events[root_id].date})
        return self.upsert(event)

    def delete(self, event_id: str, series_root_id: Optional[str] = None) -> list[str]:
        """Delete an event and its whole series.

        Args:
            event_id: Root or occurrence id
            series_root_id: Root id when the caller already knows it (e.g.
                from a rendered occurrence); takes precedence over
                ``event_id`` for resolving the series

        Returns:
            Ids of the removed root records; empty when nothing matched
        """
        root_id = series_root_id if series_root_id in self._events else None
        if root_id is None:
            root_id = self.resolve_root_id(event_id)
        if root_id is None:
            logger.debug("Delete of unknown event %s ignored", event_id)
            return []

        removed = [
            key
            for key, event in self._events.items()
            if key == root_id or event.series_root_id == root_id
        ]
        for key in removed:
            del self._events[key]
        logger.info("Deleted series %s (%d records)", root_id, len(removed))
        return removed

    def move(self, event_id: str, new_date: date) -> Optional[CalendarEvent]:
        """Relocate a root event to ``new_date``, keeping its time.

        Returns:
            The moved event, or None when ``event_id`` is not a stored root
        """
        event = self._events.get(event_id)
        if event is None:
            logger.debug("Move of non-root or unknown event %s ignored", event_id)
            return None
        if isinstance(new_date, datetime):
            new_date = new_date.date()

        moved = event.model_copy(update={"date": new_date})
        self._events[event_id] = moved
        logger.info("Moved event %s from %s to %s", event_id, event.date_key, moved.date_key)
        return moved
