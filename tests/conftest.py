"""Shared fixtures for the eventcal test suite."""

from collections.abc import Callable, Generator
from datetime import date, datetime
from typing import Any

import pytest

from eventcal.calendar.models import (
    CalendarEvent,
    CustomRecurrence,
    DailyRecurrence,
    EventColor,
    MonthlyRecurrence,
    NoRecurrence,
    WeeklyRecurrence,
)
from eventcal.core.settings import reset_settings
from eventcal.domain.storage import EventRepository, MemoryStorage


def pytest_configure(config: Any) -> None:
    """Configure pytest with markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear eventcal environment overrides and the settings singleton.

    Tests that freeze time set EVENTCAL_TEST_TIME; tests of the settings
    layer set EVENTCAL_* variables. Neither may leak into the next test.
    """
    for name in (
        "EVENTCAL_TEST_TIME",
        "EVENTCAL_DEBUG",
        "EVENTCAL_LOG_LEVEL",
        "EVENTCAL_CONFIG_FILE",
        "EVENTCAL_CONFIG_DIR",
        "EVENTCAL_DATA_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fixed_now() -> datetime:
    """Deterministic wall-clock time used as "now" across tests."""
    return datetime(2024, 5, 15, 10, 30)


@pytest.fixture
def fixed_clock(fixed_now: datetime) -> Callable[[], datetime]:
    return lambda: fixed_now


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Return a builder for root events with sensible defaults.

    builder(event_id="evt", title="Meeting", day=date(2024, 5, 1), time="09:00",
            color="blue", recurrence=None, description="")
    """

    def builder(
        event_id: str = "evt",
        title: str = "Meeting",
        day: date = date(2024, 5, 1),
        time: str = "09:00",
        color: str = "blue",
        recurrence: Any = None,
        description: str = "",
    ) -> CalendarEvent:
        return CalendarEvent(
            id=event_id,
            title=title,
            description=description,
            date=day,
            time=time,
            color=EventColor(color),
            recurrence=recurrence or NoRecurrence(),
            created_at=datetime(2024, 4, 1, 8, 0),
        )

    return builder


@pytest.fixture
def rules() -> dict[str, Any]:
    """One instance of every recurrence variant keyed by its tag."""
    return {
        "none": NoRecurrence(),
        "daily": DailyRecurrence(),
        "weekly": WeeklyRecurrence(),
        "monthly": MonthlyRecurrence(),
        "custom": CustomRecurrence(interval_days=3),
    }


@pytest.fixture
def memory_repository() -> EventRepository:
    return EventRepository(MemoryStorage())
