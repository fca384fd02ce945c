"""Command-line entry for eventcal.

A thin text front end over CalendarSession backed by the configured JSON
storage file:

    python -m eventcal month --month 2024-05
    python -m eventcal add --title Standup --date 2024-05-01 --time 09:00 --repeat daily
    python -m eventcal move event-1714550400000 2024-05-03
    python -m eventcal delete event-1714550400000-2
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from typing import Optional, TextIO

from . import _init_logging
from .calendar.date_math import parse_date
from .calendar.models import RECURRENCE_LABELS, EventColor, EventDraft
from .core.settings import get_settings
from .domain.calendar_session import CalendarSession, CalendarView, CommandResult
from .domain.storage import EventRepository, JsonFileStorage
from .log_config import configure_logging

logger = logging.getLogger(__name__)


def _parse_month(text: str) -> date:
    try:
        return parse_date(f"{text}-01")
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {text!r}") from exc


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the eventcal CLI."""
    parser = argparse.ArgumentParser(
        prog="eventcal",
        description="eventcal - month calendar with recurring events and conflict detection",
    )
    parser.add_argument("--log-level", default=None, help="Console log level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    month = sub.add_parser("month", help="Print the month grid")
    month.add_argument("--month", type=_parse_month, default=None, metavar="YYYY-MM")
    month.add_argument("--search", default="", help="Case-insensitive title/description filter")
    month.add_argument(
        "--color", default="all", choices=["all"] + [c.value for c in EventColor]
    )

    sub.add_parser("list", help="List stored root events")

    add = sub.add_parser("add", help="Create an event")
    add.add_argument("--title", required=True)
    add.add_argument("--date", required=True, metavar="YYYY-MM-DD")
    add.add_argument("--time", default="09:00", metavar="HH:mm")
    add.add_argument("--description", default="")
    add.add_argument("--color", default="blue", choices=[c.value for c in EventColor])
    add.add_argument("--repeat", default="none", choices=list(RECURRENCE_LABELS))
    add.add_argument("--every", type=int, default=1, metavar="DAYS", help="Interval for --repeat custom")

    delete = sub.add_parser("delete", help="Delete an event or its whole series")
    delete.add_argument("event_id")

    move = sub.add_parser("move", help="Move a root event to another date")
    move.add_argument("event_id")
    move.add_argument("date", metavar="YYYY-MM-DD")

    return parser


def render_month(view: CalendarView, out: TextIO) -> None:
    """Write a plain-text rendering of the month grid."""
    out.write(f"{view.title}\n")
    if view.conflict_message:
        out.write(f"! {view.conflict_message}\n")
    out.write(" ".join(f"{h:>3}" for h in view.weekday_headers) + "\n")
    for start in range(0, len(view.cells), 7):
        week = view.cells[start : start + 7]
        out.write(" ".join(
            f"{cell.date.day:>2}{'*' if cell.events else ' '}" if cell.in_current_month else "  ."
            for cell in week
        ) + "\n")

    for cell in view.cells:
        if not cell.in_current_month or not cell.events:
            continue
        out.write(f"\n{cell.date.isoformat()}\n")
        for event in cell.preview:
            flag = " [conflict]" if event.id in view.conflicts else ""
            marker = " (repeats)" if event.is_recurring else ""
            out.write(f"  {event.time} {event.title}{marker}{flag}  <{event.id}>\n")
        if cell.overflow_count:
            out.write(f"  +{cell.overflow_count} more\n")


def _report(result: CommandResult, out: TextIO) -> int:
    if result.success:
        return 0
    for field_name, message in result.errors.items():
        out.write(f"{field_name}: {message}\n")
    return 1


def run(argv: Optional[list[str]] = None, out: TextIO = sys.stdout) -> int:
    """Run one CLI command and return the process exit code."""
    args = _create_parser().parse_args(argv)
    settings = get_settings()
    _init_logging(args.log_level or settings.log_level)
    if settings.debug:
        configure_logging(debug_mode=True)

    repository = EventRepository(JsonFileStorage(settings.events_file), key=settings.storage_key)
    session = CalendarSession(repository, settings=settings)
    logger.debug("Running command %s against %s", args.command, settings.events_file)

    if args.command == "month":
        if args.month is not None:
            session.set_visible_month(args.month)
        session.set_search_text(args.search)
        session.set_color_filter(args.color)
        render_month(session.view, out)
        return 0

    if args.command == "list":
        for event in session.store.roots():
            out.write(
                f"{event.id}  {event.date_key} {event.time}  {event.title}"
                f"  [{event.color.value}, {RECURRENCE_LABELS[event.recurrence.kind]}]\n"
            )
        return 0

    if args.command == "add":
        draft = EventDraft(
            title=args.title,
            date=args.date,
            time=args.time,
            description=args.description,
            color=args.color,
            recurrence=args.repeat,
            custom_interval=args.every,
        )
        result = session.create(draft)
        if result.success:
            out.write(f"{result.event_id}\n")
        return _report(result, out)

    if args.command == "delete":
        result = session.delete(args.event_id)
        out.write(f"removed {len(result.removed_ids)} event(s)\n")
        return _report(result, out)

    result = session.move(args.event_id, args.date)
    return _report(result, out)


def main() -> None:
    """Console-script entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
