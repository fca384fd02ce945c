"""Search and color filtering for materialized events."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from eventcal.calendar.models import CalendarEvent, EventColor

logger = logging.getLogger(__name__)

ALL_COLORS = "all"


def matches(event: CalendarEvent, search_text: str = "", color_filter: Optional[str] = ALL_COLORS) -> bool:
    """Return True when ``event`` passes both the text and the color filter.

    Args:
        event: Root or occurrence
        search_text: Case-insensitive substring of the title or description;
            empty matches everything
        color_filter: A color value, or "all"/empty/None for any color
    """
    if search_text:
        needle = search_text.lower()
        if needle not in event.title.lower() and needle not in event.description.lower():
            return False

    if color_filter and color_filter != ALL_COLORS:
        return event.color.value == color_filter
    return True


@dataclass(frozen=True)
class EventQuery:
    """Search text plus color filter currently applied to the calendar."""

    search_text: str = ""
    color_filter: str = ALL_COLORS

    @property
    def is_empty(self) -> bool:
        return not self.search_text and self.color_filter in ("", ALL_COLORS)


def color_filter_options() -> list[tuple[str, str]]:
    """(value, label) pairs for a color filter dropdown, "all" first."""
    return [(ALL_COLORS, "All Colors")] + [(c.value, c.label) for c in EventColor]


class EventFilter:
    """Applies an EventQuery to a sequence of events."""

    def filter_events(
        self, events: Iterable[CalendarEvent], query: EventQuery
    ) -> list[CalendarEvent]:
        """Keep matching events, preserving input order."""
        if query.is_empty:
            return list(events)
        return [e for e in events if matches(e, query.search_text, query.color_filter)]
