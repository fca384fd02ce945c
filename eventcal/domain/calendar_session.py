"""Command boundary of the eventcal engine.

``CalendarSession`` owns all mutable state: the root-event store, the
visible month, the selection, the search/color query and the drag marker.
Each command updates that state, saves through the repository when roots
changed, and re-runs the view pipeline so ``session.view`` always reflects
the latest inputs.

Drag and drop is a two-phase protocol: ``begin_move`` marks one event in
flight; the UI must follow with exactly one of ``commit_move`` or
``cancel_move``. ``cancel_move`` always clears the marker, even when no drag
is active, so the UI can call it on every abort path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional

from eventcal.calendar.date_math import SUNDAY, add_months, parse_date, start_of_month
from eventcal.calendar.grid import GridCell, month_title, weekday_headers
from eventcal.calendar.models import CalendarEvent, EventColor, EventDraft
from eventcal.core.clock import now_local
from eventcal.domain.conflicts import conflict_summary
from eventcal.domain.event_filter import ALL_COLORS
from eventcal.domain.event_store import EventStore
from eventcal.domain.pipeline import StageResult, ViewContext, ViewPipeline, build_view_pipeline
from eventcal.domain.storage import EventRepository, MemoryStorage
from eventcal.exceptions import EventValidationError

logger = logging.getLogger(__name__)

OCCURRENCE_MOVE_ERROR = "Recurring occurrences cannot be moved individually"


@dataclass
class CommandResult:
    """Outcome of one inbound command."""

    success: bool = True
    event_id: Optional[str] = None
    errors: dict[str, str] = field(default_factory=dict)
    removed_ids: list[str] = field(default_factory=list)

    @classmethod
    def rejected(cls, errors: dict[str, str], event_id: Optional[str] = None) -> CommandResult:
        return cls(success=False, event_id=event_id, errors=dict(errors))


@dataclass
class CalendarView:
    """Snapshot of everything the UI renders."""

    reference_month: date
    title: str
    weekday_headers: list[str]
    cells: list[GridCell]
    visible: list[CalendarEvent]
    conflicts: set[str]
    conflict_message: Optional[str]
    in_flight_id: Optional[str]
    search_text: str
    color_filter: str
    pipeline_result: StageResult

    def cell_for(self, day: date) -> Optional[GridCell]:
        for cell in self.cells:
            if cell.date == day:
                return cell
        return None

    def events_on(self, day: date) -> list[CalendarEvent]:
        cell = self.cell_for(day)
        return list(cell.events) if cell else []


class CalendarSession:
    """Single-threaded owner of calendar state and entry point for commands."""

    def __init__(
        self,
        repository: Optional[EventRepository] = None,
        settings: Any = None,
        clock: Callable[[], datetime] = now_local,
        pipeline: Optional[ViewPipeline] = None,
    ) -> None:
        """Create a session and load persisted events once.

        Args:
            repository: Persistence collaborator; in-memory when omitted
            settings: Object with view settings (``view_horizon_months``,
                ``max_occurrences``, ``week_starts_on``,
                ``max_events_per_cell``); defaults apply for missing ones
            clock: Returns the current local wall-clock time
            pipeline: View pipeline; the standard one when omitted
        """
        self.repository = repository or EventRepository(MemoryStorage())
        self.clock = clock
        self.pipeline = pipeline or build_view_pipeline()

        self.view_horizon_months = getattr(settings, "view_horizon_months", 6)
        self.max_occurrences = getattr(settings, "max_occurrences", 100)
        self.week_starts_on = getattr(settings, "week_starts_on", SUNDAY)
        self.max_events_per_cell = getattr(settings, "max_events_per_cell", 3)

        self.store = EventStore(self.repository.load())
        self.reference_month = start_of_month(self.clock()).date()
        self.selected_date: Optional[date] = None
        self.search_text = ""
        self.color_filter = ALL_COLORS
        self.in_flight_id: Optional[str] = None

        self._view: Optional[CalendarView] = None
        self._context: Optional[ViewContext] = None
        logger.info("Calendar session started with %d events", len(self.store))
        self.recompute()

    # ------------------------------------------------------------------
    # Derived state

    @property
    def view(self) -> CalendarView:
        if self._view is None:
            return self.recompute()
        return self._view

    def recompute(self) -> CalendarView:
        """Re-run the view pipeline against the current inputs."""
        context = ViewContext(
            roots=self.store.roots(),
            reference_month=self.reference_month,
            today=self.clock().date(),
            selected_date=self.selected_date,
            search_text=self.search_text,
            color_filter=self.color_filter,
            in_flight_id=self.in_flight_id,
            view_horizon_months=self.view_horizon_months,
            max_occurrences=self.max_occurrences,
            week_starts_on=self.week_starts_on,
            max_events_per_cell=self.max_events_per_cell,
        )
        result = self.pipeline.process(context)
        if not result.success:
            logger.error("View recompute failed: %s", "; ".join(result.errors))

        self._context = context
        self._view = CalendarView(
            reference_month=self.reference_month,
            title=month_title(self.reference_month),
            weekday_headers=weekday_headers(self.week_starts_on),
            cells=context.grid,
            visible=context.visible,
            conflicts=context.conflicts,
            conflict_message=conflict_summary(context.conflicts),
            in_flight_id=self.in_flight_id,
            search_text=self.search_text,
            color_filter=self.color_filter,
            pipeline_result=result,
        )
        return self._view

    def find_visible(self, event_id: str) -> Optional[CalendarEvent]:
        """Look up a materialized event (root or occurrence) by id."""
        occurrences = self._context.occurrences if self._context else []
        for event in occurrences:
            if event.id == event_id:
                return event
        return self.store.get(event_id)

    def new_draft(self, day: Optional[date] = None) -> EventDraft:
        """Blank form payload for ``day`` (today when omitted)."""
        return EventDraft.for_date(day or self.clock().date())

    def _commit(self) -> None:
        self.repository.save(self.store.roots())
        self.recompute()

    # ------------------------------------------------------------------
    # Mutations

    def create(self, draft: EventDraft) -> CommandResult:
        try:
            event = self.store.create(draft, now=self.clock())
        except EventValidationError as e:
            logger.info("Create rejected: %s", e)
            return CommandResult.rejected(e.errors)
        self._commit()
        return CommandResult(event_id=event.id)

    def update(self, event_id: str, draft: EventDraft) -> CommandResult:
        try:
            event = self.store.update(event_id, draft, now=self.clock())
        except EventValidationError as e:
            logger.info("Update of %s rejected: %s", event_id, e)
            return CommandResult.rejected(e.errors, event_id=event_id)
        self._commit()
        return CommandResult(event_id=event.id)

    def save(self, draft: EventDraft, event_id: Optional[str] = None) -> CommandResult:
        """Form submit: update when editing an existing event, otherwise create."""
        if event_id:
            return self.update(event_id, draft)
        return self.create(draft)

    def delete(self, event_id: str) -> CommandResult:
        """Delete an event; deleting any member of a series deletes the series."""
        visible = self.find_visible(event_id)
        series_root_id = visible.series_root_id if visible is not None else None
        removed = self.store.delete(event_id, series_root_id=series_root_id)
        if removed:
            self._commit()
        return CommandResult(event_id=event_id, removed_ids=removed)

    def move(self, event_id: str, new_date: date | str) -> CommandResult:
        """Move a root event to ``new_date``; unknown ids are a no-op."""
        try:
            target = parse_date(new_date) if isinstance(new_date, str) else new_date
        except ValueError:
            return CommandResult.rejected({"date": "Date must be YYYY-MM-DD"}, event_id=event_id)

        visible = self.find_visible(event_id)
        if visible is not None and not visible.is_root:
            return CommandResult.rejected({"id": OCCURRENCE_MOVE_ERROR}, event_id=event_id)

        if self.store.move(event_id, target) is not None:
            self._commit()
        return CommandResult(event_id=event_id)

    # ------------------------------------------------------------------
    # Drag protocol

    def begin_move(self, event_id: str) -> CommandResult:
        """Mark ``event_id`` as in flight. Occurrences are refused."""
        event = self.find_visible(event_id)
        if event is None:
            return CommandResult.rejected({"id": f"Unknown event {event_id}"}, event_id=event_id)
        if not event.is_root:
            logger.info("Refusing to drag occurrence %s", event_id)
            return CommandResult.rejected({"id": OCCURRENCE_MOVE_ERROR}, event_id=event_id)

        self.in_flight_id = event_id
        self.recompute()
        return CommandResult(event_id=event_id)

    def commit_move(self, event_id: str, target_date: date | str) -> CommandResult:
        """Drop the in-flight event on ``target_date`` and clear the marker.

        Without an active drag this is a no-op. A drop for an event other than
        the one in flight is rejected and leaves the drag active.
        """
        if self.in_flight_id is None:
            logger.debug("Drop of %s without an active drag ignored", event_id)
            return CommandResult(event_id=event_id)
        if event_id != self.in_flight_id:
            logger.info("Drop of %s rejected; %s is in flight", event_id, self.in_flight_id)
            return CommandResult.rejected(
                {"id": f"Event {event_id} is not being moved"}, event_id=event_id
            )

        self.in_flight_id = None
        result = self.move(event_id, target_date)
        self.recompute()
        return result

    def cancel_move(self) -> CommandResult:
        """Clear the in-flight marker unconditionally."""
        had_marker = self.in_flight_id is not None
        self.in_flight_id = None
        if had_marker:
            self.recompute()
        return CommandResult()

    begin_drag = begin_move
    end_drag = cancel_move

    # ------------------------------------------------------------------
    # Navigation and query

    def set_visible_month(self, day: date) -> CommandResult:
        self.reference_month = start_of_month(day).date()
        self.recompute()
        return CommandResult()

    def next_month(self) -> CommandResult:
        return self.set_visible_month(add_months(self.reference_month, 1))

    def previous_month(self) -> CommandResult:
        return self.set_visible_month(add_months(self.reference_month, -1))

    def go_to_today(self) -> CommandResult:
        return self.set_visible_month(self.clock().date())

    def select_date(self, day: Optional[date]) -> CommandResult:
        self.selected_date = day
        self.recompute()
        return CommandResult()

    def set_search_text(self, text: str) -> CommandResult:
        self.search_text = text or ""
        self.recompute()
        return CommandResult()

    def set_color_filter(self, value: Optional[str]) -> CommandResult:
        value = value or ALL_COLORS
        if value != ALL_COLORS and value not in {c.value for c in EventColor}:
            return CommandResult.rejected({"color": f"Unknown color {value}"})
        self.color_filter = value
        self.recompute()
        return CommandResult()
