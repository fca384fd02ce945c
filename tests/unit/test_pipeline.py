"""Unit tests for the eventcal view pipeline and its stages."""

from datetime import date

import pytest

from eventcal.calendar.models import DailyRecurrence
from eventcal.domain.pipeline import StageResult, ViewContext, ViewPipeline, build_view_pipeline
from eventcal.domain.pipeline_stages import (
    CellPlacementStage,
    ConflictStage,
    ExpansionStage,
    FilterStage,
    GridStage,
)

pytestmark = pytest.mark.unit


class _RaisingStage:
    name = "Boom"

    def process(self, context):
        raise RuntimeError("stage exploded")


class _FailingStage:
    name = "Fails"

    def process(self, context):
        result = StageResult(stage_name=self.name)
        result.add_error("nothing to do")
        return result


class _RecordingStage:
    name = "Recorder"

    def __init__(self):
        self.called = False

    def process(self, context):
        self.called = True
        return StageResult(stage_name=self.name)


def _context(roots, **kwargs):
    kwargs.setdefault("reference_month", date(2024, 5, 1))
    kwargs.setdefault("today", date(2024, 5, 15))
    return ViewContext(roots=roots, **kwargs)


class TestViewPipeline:
    def test_standard_stage_order(self):
        names = [stage.name for stage in build_view_pipeline().stages]
        assert names == ["Grid", "Expansion", "Filter", "Conflicts", "CellPlacement"]

    def test_exception_stops_run_and_is_reported(self):
        recorder = _RecordingStage()
        pipeline = ViewPipeline().add_stage(_RaisingStage()).add_stage(recorder)

        result = pipeline.process(ViewContext())

        assert result.success is False
        assert "stage exploded" in result.errors[0]
        assert recorder.called is False

    def test_failed_stage_stops_run(self):
        recorder = _RecordingStage()
        result = ViewPipeline().add_stage(_FailingStage()).add_stage(recorder).process(ViewContext())

        assert result.success is False
        assert result.errors == ["nothing to do"]
        assert recorder.called is False

    def test_missing_reference_month_fails_grid_stage(self):
        result = build_view_pipeline().process(ViewContext())
        assert result.success is False

    def test_full_run(self, make_event):
        roots = [
            make_event(event_id="s", day=date(2024, 5, 1), recurrence=DailyRecurrence()),
            make_event(event_id="o", day=date(2024, 5, 3)),
        ]
        context = _context(roots)

        result = build_view_pipeline().process(context)

        assert result.success
        assert context.horizon == date(2024, 11, 1)
        # root plus the 100-occurrence cap, plus the single event
        assert len(context.occurrences) == 102
        assert context.conflicts == {"s-2", "o"}
        may_3 = next(c for c in context.grid if c.date == date(2024, 5, 3))
        assert [e.id for e in may_3.events] == ["s-2", "o"]
        assert result.metadata["conflict_count"] == 2


class TestStages:
    def test_grid_stage_honours_settings(self):
        context = _context([], week_starts_on=0, selected_date=date(2024, 5, 2), max_events_per_cell=2)

        GridStage().process(context)

        assert context.grid[0].date.weekday() == 0
        assert any(c.is_selected for c in context.grid)
        assert context.grid[0].max_preview == 2

    def test_expansion_horizon_and_cap(self, make_event):
        context = _context(
            [make_event(day=date(2024, 5, 1), recurrence=DailyRecurrence())],
            view_horizon_months=1,
            max_occurrences=10,
        )

        result = ExpansionStage().process(context)

        assert context.horizon == date(2024, 6, 1)
        assert len(context.occurrences) == 11
        assert result.events_out == 11

    def test_expansion_horizon_clamped_at_last_month(self, make_event):
        context = _context(
            [make_event(day=date(9999, 11, 30), recurrence=DailyRecurrence())],
            reference_month=date(9999, 12, 1),
        )

        result = ExpansionStage().process(context)

        assert result.success
        assert context.horizon == date.max
        assert context.occurrences[-1].date == date.max
        assert len(context.occurrences) == 32

    def test_filter_stage_applies_query(self, make_event):
        context = _context([], search_text="lunch", color_filter="all")
        context.occurrences = [make_event(event_id="a", title="Lunch"), make_event(event_id="b", title="Gym")]

        FilterStage().process(context)

        assert [e.id for e in context.visible] == ["a"]

    def test_conflicts_only_consider_visible_events(self, make_event):
        context = _context([], color_filter="red")
        context.occurrences = [make_event(event_id="a", color="red"), make_event(event_id="b", color="blue")]

        FilterStage().process(context)
        ConflictStage().process(context)

        assert context.conflicts == set()

    def test_cell_placement_skips_in_flight_event(self, make_event):
        context = _context([], in_flight_id="a")
        GridStage().process(context)
        context.visible = [make_event(event_id="a"), make_event(event_id="b")]

        CellPlacementStage().process(context)

        may_1 = next(c for c in context.grid if c.date == date(2024, 5, 1))
        assert [e.id for e in may_1.events] == ["b"]

    def test_cell_placement_ignores_events_outside_grid(self, make_event):
        context = _context([])
        GridStage().process(context)
        context.visible = [make_event(event_id="far", day=date(2024, 9, 1))]

        result = CellPlacementStage().process(context)

        assert result.events_out == 0
        assert all(not c.events for c in context.grid)
