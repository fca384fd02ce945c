"""Unit tests for eventcal.domain.storage."""

import json
from unittest.mock import patch

import pytest

from eventcal.calendar.models import DailyRecurrence
from eventcal.domain.storage import (
    DEFAULT_STORAGE_KEY,
    EventRepository,
    JsonFileStorage,
    MemoryStorage,
)

pytestmark = pytest.mark.unit


class TestMemoryStorage:
    def test_missing_key_is_none(self):
        assert MemoryStorage().get("nope") is None

    def test_values_are_copied(self):
        storage = MemoryStorage()
        value = [{"id": "a"}]
        storage.set("k", value)
        value[0]["id"] = "changed"

        assert storage.get("k") == [{"id": "a"}]

    def test_initial_values(self):
        assert MemoryStorage({"k": [1, 2]}).get("k") == [1, 2]


class TestJsonFileStorage:
    def test_set_then_get_persists_to_disk(self, tmp_path):
        path = tmp_path / "nested" / "events.json"
        storage = JsonFileStorage(path)

        assert storage.set("calendar-events", [{"id": "a"}]) is True
        assert storage.path == path
        assert json.loads(path.read_text(encoding="utf-8")) == {"calendar-events": [{"id": "a"}]}
        assert JsonFileStorage(path).get("calendar-events") == [{"id": "a"}]

    def test_set_keeps_other_keys(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "events.json")
        storage.set("one", 1)
        storage.set("two", 2)

        assert storage.get("one") == 1
        assert storage.get("two") == 2

    def test_missing_file_reads_empty(self, tmp_path):
        assert JsonFileStorage(tmp_path / "absent.json").get("calendar-events") is None

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text("{not json", encoding="utf-8")
        assert JsonFileStorage(path).get("calendar-events") is None

    def test_non_object_root_reads_empty(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        assert JsonFileStorage(path).get("calendar-events") is None

    def test_write_failure_returns_false_and_leaves_no_temp_file(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "events.json")

        with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            assert storage.set("k", [1]) is False

        assert list(tmp_path.iterdir()) == []


class TestEventRepository:
    def test_default_key(self, memory_repository):
        assert memory_repository.key == DEFAULT_STORAGE_KEY == "calendar-events"

    def test_empty_storage_loads_empty(self, memory_repository):
        assert memory_repository.load() == []

    def test_save_then_load_roundtrip(self, make_event):
        repository = EventRepository(MemoryStorage())
        events = [make_event(event_id="a"), make_event(event_id="b", recurrence=DailyRecurrence())]

        assert repository.save(events) is True
        assert repository.load() == events

    def test_save_writes_only_roots(self, make_event):
        storage = MemoryStorage()
        root = make_event(event_id="a", recurrence=DailyRecurrence())
        occurrence = root.model_copy(update={"id": "a-1", "series_root_id": "a"})

        EventRepository(storage).save([root, occurrence])

        assert [r["id"] for r in storage.get(DEFAULT_STORAGE_KEY)] == ["a"]

    def test_non_list_payload_loads_empty(self):
        storage = MemoryStorage({DEFAULT_STORAGE_KEY: {"id": "a"}})
        assert EventRepository(storage).load() == []

    def test_malformed_records_skipped(self, make_event):
        good = make_event(event_id="good").to_record()
        storage = MemoryStorage(
            {DEFAULT_STORAGE_KEY: [good, {"id": "bad", "title": "x"}, "junk", {**good, "id": "late", "time": "9"}]}
        )

        assert [e.id for e in EventRepository(storage).load()] == ["good"]

    def test_persisted_occurrences_dropped(self, make_event):
        root = make_event(event_id="a").to_record()
        stray = {**root, "id": "a-1", "parentId": "a", "isRecurring": True}
        storage = MemoryStorage({DEFAULT_STORAGE_KEY: [root, stray]})

        assert [e.id for e in EventRepository(storage).load()] == ["a"]

    def test_custom_key(self, make_event):
        storage = MemoryStorage()
        EventRepository(storage, key="other").save([make_event()])

        assert storage.get(DEFAULT_STORAGE_KEY) is None
        assert len(storage.get("other")) == 1

    def test_save_failure_is_absorbed(self, make_event):
        storage = MemoryStorage()
        with patch.object(storage, "set", side_effect=OSError("quota exceeded")):
            assert EventRepository(storage).save([make_event()]) is False
