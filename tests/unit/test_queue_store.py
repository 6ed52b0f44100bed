"""Unit tests for PersistedQueueStore."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from notedrop.errors import DirectoryCreationFailed, PersistWriteFailed
from notedrop.models.notes import PendingNote
from notedrop.storage.queue_store import PersistedQueueStore, migrate_legacy_directory


@pytest.mark.unit
class TestPersistedQueueStore:
    """Test cases for PersistedQueueStore class."""

    def test_initialization_creates_directory(self, temp_data_dir):
        data_dir = Path(temp_data_dir) / "nested" / "data"
        store = PersistedQueueStore(data_dir)

        assert data_dir.is_dir()
        assert store.file_path == data_dir / "pending-notes.json"

    def test_initialization_directory_failure(self, temp_data_dir):
        blocker = Path(temp_data_dir) / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(DirectoryCreationFailed):
            PersistedQueueStore(blocker / "data")

    def test_load_missing_file_is_empty(self, temp_data_dir):
        store = PersistedQueueStore(temp_data_dir)
        assert store.load() == []

    def test_save_and_load_preserves_order(self, temp_data_dir):
        store = PersistedQueueStore(temp_data_dir)
        notes = [PendingNote(text=f"note {i}") for i in range(3)]

        store.save(notes)
        loaded = store.load()

        assert [n.id for n in loaded] == [n.id for n in notes]
        assert [n.text for n in loaded] == ["note 0", "note 1", "note 2"]
        assert loaded[0].created_at == notes[0].created_at

    def test_file_format(self, temp_data_dir):
        store = PersistedQueueStore(temp_data_dir)
        note = PendingNote(text="Příliš žluťoučký kůň")
        store.save([note])

        with open(store.file_path, encoding="utf-8") as f:
            data = json.load(f)

        assert data == [{
            "id": str(note.id),
            "text": "Příliš žluťoučký kůň",
            "createdAt": note.created_at.isoformat(),
        }]

    def test_save_empty_removes_file(self, temp_data_dir):
        store = PersistedQueueStore(temp_data_dir)
        store.save([PendingNote(text="x")])
        assert store.file_path.exists()

        store.save([])

        assert not store.file_path.exists()
        assert store.load() == []

    @pytest.mark.parametrize("content", [
        "{not json",
        '{"id": "abc"}',
        '[{"id": "not-a-uuid", "text": "x", "createdAt": "2024-01-01T00:00:00"}]',
        '[{"text": "missing id"}]',
        '[{"id": 123, "text": "x", "createdAt": "2024-01-01T00:00:00"}]',
        '[{"id": ["a"], "text": "x", "createdAt": "2024-01-01T00:00:00"}]',
        '[{"id": "0f8fad5b-d9cb-469f-a165-70867728950e", "text": "x", "createdAt": 1704067200}]',
        '[{"id": "0f8fad5b-d9cb-469f-a165-70867728950e", "text": null, "createdAt": "2024-01-01T00:00:00"}]',
        "[1, 2]",
    ])
    def test_corrupt_file_loads_as_empty(self, temp_data_dir, content):
        store = PersistedQueueStore(temp_data_dir)
        store.file_path.write_text(content, encoding="utf-8")

        assert store.load() == []

    def test_failed_write_leaves_previous_snapshot(self, temp_data_dir):
        store = PersistedQueueStore(temp_data_dir)
        original = [PendingNote(text="kept")]
        store.save(original)

        with patch("notedrop.storage.queue_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistWriteFailed) as exc_info:
                store.save(original + [PendingNote(text="lost")])

        assert isinstance(exc_info.value.cause, OSError)
        assert [n.text for n in store.load()] == ["kept"]
        # No temp files left behind
        assert os.listdir(temp_data_dir) == ["pending-notes.json"]


@pytest.mark.unit
class TestMigrateLegacyDirectory:

    def test_moves_old_directory(self, temp_data_dir):
        old_dir = Path(temp_data_dir) / "old"
        new_dir = Path(temp_data_dir) / "new"
        old_dir.mkdir()
        (old_dir / "pending-notes.json").write_text("[]")

        assert migrate_legacy_directory(old_dir, new_dir) is True
        assert (new_dir / "pending-notes.json").exists()
        assert not old_dir.exists()

    def test_keeps_existing_new_directory(self, temp_data_dir):
        old_dir = Path(temp_data_dir) / "old"
        new_dir = Path(temp_data_dir) / "new"
        old_dir.mkdir()
        new_dir.mkdir()

        assert migrate_legacy_directory(old_dir, new_dir) is False
        assert old_dir.exists()

    def test_missing_old_directory(self, temp_data_dir):
        assert migrate_legacy_directory(Path(temp_data_dir) / "nope", Path(temp_data_dir) / "new") is False
