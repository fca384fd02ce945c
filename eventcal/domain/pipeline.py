"""View recompute pipeline for eventcal.

Every derived view is recomputed from scratch, in a fixed dependency order,
after each command that changes an input:

    grid        <- visible month (+ today, selection, week start)
    occurrences <- root events x horizon
    visible     <- occurrences x search text x color filter
    conflicts   <- visible
    cells       <- grid x visible (minus the in-flight event)

Usage:
    pipeline = build_view_pipeline()
    context = ViewContext(roots=store.roots(), reference_month=date(2024, 5, 1))
    result = pipeline.process(context)
    cells = context.grid
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Protocol

from eventcal.calendar.date_math import SUNDAY
from eventcal.calendar.grid import GridCell
from eventcal.calendar.models import CalendarEvent
from eventcal.domain.event_filter import ALL_COLORS, EventQuery

logger = logging.getLogger(__name__)


@dataclass
class ViewContext:
    """Inputs and outputs passed between pipeline stages."""

    # Inputs
    roots: list[CalendarEvent] = field(default_factory=list)
    reference_month: Optional[date] = None
    today: Optional[date] = None
    selected_date: Optional[date] = None
    search_text: str = ""
    color_filter: str = ALL_COLORS
    in_flight_id: Optional[str] = None

    # Configuration
    view_horizon_months: int = 6
    max_occurrences: int = 100
    week_starts_on: int = SUNDAY
    max_events_per_cell: int = 3

    # Outputs (written by stages)
    horizon: Optional[date] = None
    grid: list[GridCell] = field(default_factory=list)
    occurrences: list[CalendarEvent] = field(default_factory=list)
    visible: list[CalendarEvent] = field(default_factory=list)
    conflicts: set[str] = field(default_factory=set)

    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def query(self) -> EventQuery:
        return EventQuery(search_text=self.search_text, color_filter=self.color_filter or ALL_COLORS)


@dataclass
class StageResult:
    """Result of one stage or of the whole pipeline run."""

    success: bool = True
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    events_in: int = 0
    events_out: int = 0
    stage_name: str = ""

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning("[%s] %s", self.stage_name, message)

    def add_error(self, message: str) -> None:
        """Add an error message and mark as failed."""
        self.errors.append(message)
        self.success = False
        logger.error("[%s] %s", self.stage_name, message)


class ViewStage(Protocol):
    """One step of the view recompute."""

    @property
    def name(self) -> str: ...

    def process(self, context: ViewContext) -> StageResult: ...


class ViewPipeline:
    """Runs view stages in sequence over a shared ViewContext."""

    def __init__(self) -> None:
        self.stages: list[ViewStage] = []

    def add_stage(self, stage: ViewStage) -> ViewPipeline:
        """Add a stage (builder pattern)."""
        self.stages.append(stage)
        logger.debug("Added stage to pipeline: %s", stage.name)
        return self

    def process(self, context: ViewContext) -> StageResult:
        """Execute all stages in order.

        A stage that fails, or raises, stops the run; the failure is reported
        in the returned result rather than propagated.
        """
        aggregated = StageResult(stage_name="Pipeline", events_in=len(context.roots))

        for index, stage in enumerate(self.stages, start=1):
            try:
                stage_result = stage.process(context)
            except Exception as e:
                aggregated.add_error(f"Stage {stage.name} raised exception: {e}")
                logger.exception("Stage %s failed with exception", stage.name)
                return aggregated

            logger.debug(
                "Stage %d/%d (%s) completed: success=%s, events_in=%d, events_out=%d",
                index,
                len(self.stages),
                stage.name,
                stage_result.success,
                stage_result.events_in,
                stage_result.events_out,
            )
            aggregated.warnings.extend(stage_result.warnings)
            aggregated.errors.extend(stage_result.errors)
            aggregated.metadata.update(stage_result.metadata)

            if not stage_result.success:
                aggregated.success = False
                logger.error("Pipeline stopped at stage %d (%s)", index, stage.name)
                return aggregated

        aggregated.events_out = len(context.visible)
        return aggregated

    def __repr__(self) -> str:
        return f"ViewPipeline(stages={[stage.name for stage in self.stages]})"


def build_view_pipeline() -> ViewPipeline:
    """The standard pipeline in dependency order."""
    from eventcal.domain.pipeline_stages import (
        CellPlacementStage,
        ConflictStage,
        ExpansionStage,
        FilterStage,
        GridStage,
    )

    return (
        ViewPipeline()
        .add_stage(GridStage())
        .add_stage(ExpansionStage())
        .add_stage(FilterStage())
        .add_stage(ConflictStage())
        .add_stage(CellPlacementStage())
    )
