"""Month grid construction for eventcal.

A grid is every date from the start of the week containing the 1st of the
month through the end of the week containing its last day, so its length is
always a whole number of weeks.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .date_math import (
    SUNDAY,
    add_days,
    end_of_month,
    is_same_day,
    start_of_month,
    weekday_index,
)
from .models import CalendarEvent


@dataclass
class GridCell:
    """One day of the month grid.

    ``events`` is filled in by the view pipeline with the visible events for
    the day; ``preview`` and ``overflow_count`` split it for a compact cell.
    """

    date: date
    in_current_month: bool
    is_today: bool = False
    is_selected: bool = False
    events: list[CalendarEvent] = field(default_factory=list)
    max_preview: int = 3

    @property
    def preview(self) -> list[CalendarEvent]:
        return self.events[: self.max_preview]

    @property
    def overflow_count(self) -> int:
        """Number of events hidden behind a "+N more" marker."""
        return max(0, len(self.events) - self.max_preview)


def build_grid(
    reference: date,
    today: Optional[date] = None,
    selected: Optional[date] = None,
    week_starts_on: int = SUNDAY,
    max_preview: int = 3,
) -> list[GridCell]:
    """Build the ordered day cells for the month containing ``reference``.

    Args:
        reference: Any date inside the month to display
        today: Date flagged as today (no cell is flagged when None)
        selected: Currently selected date, if any
        week_starts_on: Python weekday number (Monday=0) of the first column
        max_preview: Events shown per cell before the overflow marker

    Returns:
        Cells in ascending date order; the length is a multiple of 7
    """
    first = start_of_month(reference).date()
    last = end_of_month(reference).date()
    grid_start = add_days(first, -weekday_index(first, week_starts_on))
    grid_end = add_days(last, 6 - weekday_index(last, week_starts_on))

    cells: list[GridCell] = []
    day = grid_start
    while day <= grid_end:
        cells.append(
            GridCell(
                date=day,
                in_current_month=(day.year, day.month) == (reference.year, reference.month),
                is_today=today is not None and is_same_day(day, today),
                is_selected=selected is not None and is_same_day(day, selected),
                max_preview=max_preview,
            )
        )
        day = add_days(day, 1)
    return cells


def month_title(reference: date) -> str:
    """Heading for the month, e.g. ``"October 2026"``."""
    return f"{calendar.month_name[reference.month]} {reference.year}"


def weekday_headers(week_starts_on: int = SUNDAY) -> list[str]:
    """Abbreviated weekday names in grid column order."""
    return [calendar.day_abbr[(week_starts_on + offset) % 7] for offset in range(7)]
