"""Time-conflict detection over the visible event set."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from itertools import combinations
from typing import Optional

from eventcal.calendar.models import CalendarEvent


def group_by_date(events: Iterable[CalendarEvent]) -> dict[str, list[CalendarEvent]]:
    """Group events by their YYYY-MM-DD date, keeping input order in each group."""
    groups: dict[str, list[CalendarEvent]] = defaultdict(list)
    for event in events:
        groups[event.date_key].append(event)
    return dict(groups)


def find_conflicts(events: Iterable[CalendarEvent]) -> set[str]:
    """Ids of every event sharing both its date and its exact time with another.

    This is a pure function of its input; callers recompute it whenever the
    visible set changes.
    """
    conflicting: set[str] = set()
    for day_events in group_by_date(events).values():
        for first, second in combinations(day_events, 2):
            if first.time == second.time:
                conflicting.add(first.id)
                conflicting.add(second.id)
    return conflicting


def conflict_summary(conflicts: set[str]) -> Optional[str]:
    """Warning banner text, or None when nothing conflicts."""
    if not conflicts:
        return None
    count = len(conflicts)
    verb = "events have" if count > 1 else "event has"
    return f"{count} {verb} time conflicts"
