"""Concrete view pipeline stages.

Each stage wraps one engine component and writes its output into the
ViewContext for the stages after it.
"""

from __future__ import annotations

import logging
from datetime import date

from eventcal.calendar.date_math import add_months, start_of_month
from eventcal.calendar.grid import build_grid
from eventcal.calendar.recurrence import RecurrenceExpander, RecurrenceExpanderConfig
from eventcal.domain.conflicts import find_conflicts, group_by_date
from eventcal.domain.event_filter import EventFilter
from eventcal.domain.pipeline import StageResult, ViewContext

logger = logging.getLogger(__name__)


class GridStage:
    """Builds the day cells of the visible month."""

    name = "Grid"

    def process(self, context: ViewContext) -> StageResult:
        result = StageResult(stage_name=self.name)
        if context.reference_month is None:
            result.add_error("No visible month set")
            return result

        context.grid = build_grid(
            context.reference_month,
            today=context.today,
            selected=context.selected_date,
            week_starts_on=context.week_starts_on,
            max_preview=context.max_events_per_cell,
        )
        result.metadata["grid_size"] = len(context.grid)
        return result


class ExpansionStage:
    """Expands root events up to the view horizon."""

    name = "Expansion"

    def process(self, context: ViewContext) -> StageResult:
        result = StageResult(stage_name=self.name, events_in=len(context.roots))
        if context.reference_month is None:
            result.add_error("No visible month set")
            return result

        try:
            context.horizon = add_months(
                start_of_month(context.reference_month).date(), context.view_horizon_months
            )
        except (OverflowError, ValueError):
            context.horizon = date.max
        expander = RecurrenceExpander(
            RecurrenceExpanderConfig(max_occurrences=context.max_occurrences)
        )
        context.occurrences = expander.expand_all(context.roots, context.horizon)

        result.events_out = len(context.occurrences)
        result.metadata["horizon"] = context.horizon.isoformat()
        return result


class FilterStage:
    """Applies the search text and color filter."""

    name = "Filter"

    def __init__(self, event_filter: EventFilter | None = None) -> None:
        self.event_filter = event_filter or EventFilter()

    def process(self, context: ViewContext) -> StageResult:
        result = StageResult(stage_name=self.name, events_in=len(context.occurrences))
        context.visible = self.event_filter.filter_events(context.occurrences, context.query)
        result.events_out = len(context.visible)
        return result


class ConflictStage:
    """Flags visible events sharing a date and time."""

    name = "Conflicts"

    def process(self, context: ViewContext) -> StageResult:
        result = StageResult(stage_name=self.name, events_in=len(context.visible))
        context.conflicts = find_conflicts(context.visible)
        result.events_out = len(context.visible)
        result.metadata["conflict_count"] = len(context.conflicts)
        return result


class CellPlacementStage:
    """Places visible events into their grid cells.

    The in-flight event of an unfinished drag is left out of every cell.
    """

    name = "CellPlacement"

    def process(self, context: ViewContext) -> StageResult:
        result = StageResult(stage_name=self.name, events_in=len(context.visible))

        by_day = group_by_date(e for e in context.visible if e.id != context.in_flight_id)

        placed = 0
        for cell in context.grid:
            cell.events = by_day.get(cell.date.isoformat(), [])
            placed += len(cell.events)

        result.events_out = placed
        return result
