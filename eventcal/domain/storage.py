"""Key-value persistence for eventcal root events.

The engine never touches storage mid-computation: the session loads once at
start and saves after each committed mutation. Storage problems are logged
and absorbed so the in-memory model keeps working.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from eventcal.calendar.models import CalendarEvent

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "calendar-events"


class KeyValueStorage(Protocol):
    """Storage collaborator holding JSON-serializable values under string keys."""

    def get(self, key: str) -> Any:
        """Return the stored value, or None when absent or unreadable."""
        ...

    def set(self, key: str, value: Any) -> bool:
        """Store ``value``; return False (and log) when it could not be written."""
        ...


class MemoryStorage:
    """In-process storage, used by tests and embedders without a disk."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> bool:
        # Round-trip through JSON so callers never share mutable state with us.
        self._data[key] = json.dumps(value)
        return True


class JsonFileStorage:
    """JSON-file storage with atomic writes.

    The on-disk format is a JSON object mapping storage keys to values.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.debug("Could not ensure directory for event storage: %s", self._path.parent)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.debug("Storage file not found; starting empty: %s", self._path)
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read storage %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Storage %s root is not an object; ignoring contents", self._path)
            return {}
        return data

    def get(self, key: str) -> Any:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> bool:
        data = self._read_all()
        data[key] = value
        return self._persist(data)

    def _persist(self, data: dict[str, Any]) -> bool:
        """Write ``data`` to disk atomically.

        Writes to a temporary file in the same directory then replaces the
        target, so a crash never leaves a half-written file behind.
        """
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8", suffix=".tmp"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False, indent=2)
                tf.flush()
                with contextlib.suppress(OSError):
                    os.fsync(tf.fileno())
            tmp_path.replace(self._path)
            return True
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to persist storage to %s: %s", self._path, exc)
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            return False


class EventRepository:
    """Loads and saves the root-event array under one storage key."""

    def __init__(self, storage: KeyValueStorage, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self) -> list[CalendarEvent]:
        """Load persisted root events.

        An unreadable or non-list payload loads as an empty set. Individually
        malformed records are skipped, and records carrying a ``parentId``
        (derived occurrences that were persisted by mistake) are dropped.
        """
        try:
            payload = self.storage.get(self.key)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load events under %r: %s", self.key, exc)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            logger.warning("Stored events under %r are not a list; starting empty", self.key)
            return []

        events: list[CalendarEvent] = []
        for index, record in enumerate(payload):
            try:
                event = CalendarEvent.from_record(record)
            except (ValidationError, ValueError, TypeError) as exc:
                logger.warning("Skipping malformed event record %d: %s", index, exc)
                continue
            if not event.is_root:
                logger.warning("Dropping persisted occurrence %s of %s", event.id, event.series_root_id)
                continue
            events.append(event)

        logger.debug("Loaded %d root events from %r", len(events), self.key)
        return events

    def save(self, events: Iterable[CalendarEvent]) -> bool:
        """Persist root events; failures are logged, never raised."""
        records = [event.to_record() for event in events if event.is_root]
        try:
            ok = self.storage.set(self.key, records)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to save events under %r: %s", self.key, exc)
            return False
        if ok:
            logger.debug("Saved %d root events under %r", len(records), self.key)
        return bool(ok)
