"""Recurrence expansion for eventcal.

Expands one root event into its occurrences up to a horizon date. Each
occurrence date is computed from the previous occurrence rather than from the
root, so month-end rollover compounds along a monthly series (Jan 31 ->
Mar 3 -> Apr 3 ...). The expansion is bounded by a hard occurrence cap.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from .date_math import add_days, add_months, add_weeks
from .models import (
    CalendarEvent,
    CustomRecurrence,
    DailyRecurrence,
    MonthlyRecurrence,
    NoRecurrence,
    WeeklyRecurrence,
)

logger = logging.getLogger(__name__)


@dataclass
class RecurrenceExpanderConfig:
    """Configuration for recurrence expansion with explicit defaults."""

    max_occurrences: int = 100
    default_horizon_months: int = 12

    @classmethod
    def from_settings(cls, settings: Any) -> RecurrenceExpanderConfig:
        """Extract expansion configuration from a settings object.

        Args:
            settings: Object with optional ``max_occurrences`` and
                ``default_horizon_months`` attributes

        Returns:
            RecurrenceExpanderConfig with values from settings or defaults
        """
        return cls(
            max_occurrences=getattr(settings, "max_occurrences", 100),
            default_horizon_months=getattr(settings, "default_horizon_months", 12),
        )


def next_occurrence_date(event: CalendarEvent, current: date) -> Optional[date]:
    """Date of the occurrence following ``current``, or None for no recurrence."""
    rule = event.recurrence
    if isinstance(rule, DailyRecurrence):
        return add_days(current, 1)
    if isinstance(rule, WeeklyRecurrence):
        return add_weeks(current, 1)
    if isinstance(rule, MonthlyRecurrence):
        return add_months(current, 1)
    if isinstance(rule, CustomRecurrence):
        return add_days(current, max(1, rule.interval_days))
    return None


class RecurrenceExpander:
    """Expands root events into bounded occurrence sequences."""

    def __init__(self, config: Optional[RecurrenceExpanderConfig] = None) -> None:
        self.config = config or RecurrenceExpanderConfig()

    def default_horizon(self, event: CalendarEvent) -> date:
        """Last date of the default window; clamped to the last representable date."""
        try:
            return add_months(event.date, self.config.default_horizon_months)
        except (OverflowError, ValueError):
            return date.max

    def expand(
        self, event: CalendarEvent, horizon: Optional[date] = None
    ) -> list[CalendarEvent]:
        """Expand one root event up to ``horizon`` (inclusive).

        Args:
            event: Root event; always the first element of the result
            horizon: Last date an occurrence may fall on. Defaults to
                ``default_horizon_months`` past the event's date.

        Returns:
            ``[event]`` followed by occurrences ``{id}-1``, ``{id}-2``, ...
        """
        if isinstance(event.recurrence, NoRecurrence):
            return [event]

        if horizon is None:
            horizon = self.default_horizon(event)
        elif isinstance(horizon, datetime):
            horizon = horizon.date()

        events = [event]
        current = event.date
        count = 0
        while count < self.config.max_occurrences:
            try:
                next_date = next_occurrence_date(event, current)
            except (OverflowError, ValueError):
                # Past the last representable date: the series ends here.
                logger.debug("Expansion of %s stopped at the end of the calendar", event.id)
                break
            if next_date is None or next_date > horizon:
                break

            count += 1
            events.append(
                event.model_copy(
                    update={
                        "id": f"{event.id}-{count}",
                        "date": next_date,
                        "series_root_id": event.id,
                    }
                )
            )
            current = next_date
        else:
            logger.debug(
                "Expansion of %s truncated at %d occurrences",
                event.id,
                self.config.max_occurrences,
            )

        return events

    def expand_all(
        self, events: Iterable[CalendarEvent], horizon: Optional[date] = None
    ) -> list[CalendarEvent]:
        """Expand every root in input order; derived occurrences are skipped."""
        expanded: list[CalendarEvent] = []
        for event in events:
            if not event.is_root:
                logger.debug("Skipping derived occurrence %s during expansion", event.id)
                continue
            expanded.extend(self.expand(event, horizon))
        return expanded

