"""Unit tests for LocalNoteWriter."""

from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from notedrop.errors import DirectoryCreationFailed, PersistWriteFailed
from notedrop.storage.note_files import LocalNoteWriter, fallback_title, sanitize_title


@pytest.mark.unit
class TestTitles:

    def test_fallback_title_short_text(self):
        assert fallback_title("  Buy milk  ") == "Buy milk"

    def test_fallback_title_truncates(self):
        title = fallback_title("a" * 80)
        assert title == "a" * 60 + "…"

    def test_fallback_title_empty(self):
        assert fallback_title("   ") == "Voice note"

    def test_sanitize_removes_forbidden_characters(self):
        assert sanitize_title('a/b:c\\d?e*f"g<h>i|j') == "abcdefghij"


@pytest.mark.unit
class TestLocalNoteWriter:

    def test_save_creates_directory_and_file(self, temp_data_dir):
        notes_dir = Path(temp_data_dir) / "notes" / "inbox"
        writer = LocalNoteWriter(notes_dir)

        path = writer.save_note("Remember the dentist", title="Dentist")

        assert path.parent == notes_dir
        assert path.name == f"{date.today().isoformat()} Dentist.md"
        assert path.read_text(encoding="utf-8") == "Remember the dentist"
        assert [p.name for p in notes_dir.iterdir()] == [path.name]

    def test_title_defaults_to_text(self, temp_data_dir):
        path = LocalNoteWriter(temp_data_dir).save_note("Call: mom?")

        assert path.name == f"{date.today().isoformat()} Call mom.md"

    def test_colliding_names_get_numbered(self, temp_data_dir):
        writer = LocalNoteWriter(temp_data_dir)

        names = [writer.save_note(f"body {i}", title="Same").name for i in range(3)]

        today = date.today().isoformat()
        assert names == [f"{today} Same.md", f"{today} Same 2.md", f"{today} Same 3.md"]

    def test_random_suffix_after_numbered_names_run_out(self, temp_data_dir):
        writer = LocalNoteWriter(temp_data_dir)
        day = date(2024, 5, 1)
        (Path(temp_data_dir) / "2024-05-01 Full.md").touch()
        for i in range(2, 100):
            (Path(temp_data_dir) / f"2024-05-01 Full {i}.md").touch()

        name = writer.build_filename("Full", day=day)

        assert name.startswith("2024-05-01 Full ")
        suffix = name[len("2024-05-01 Full "):-len(".md")]
        assert len(suffix) == 6
        assert suffix.isalnum()

    def test_unicode_text_round_trips(self, temp_data_dir):
        path = LocalNoteWriter(temp_data_dir).save_note("Příliš žluťoučký kůň", title="Kůň")

        assert path.read_text(encoding="utf-8") == "Příliš žluťoučký kůň"

    def test_directory_creation_failure(self, temp_data_dir):
        blocker = Path(temp_data_dir) / "file"
        blocker.write_text("not a directory")

        with pytest.raises(DirectoryCreationFailed):
            LocalNoteWriter(blocker / "notes").save_note("text")

    def test_write_failure_leaves_no_temp_file(self, temp_data_dir):
        writer = LocalNoteWriter(temp_data_dir)

        with patch("notedrop.storage.note_files.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistWriteFailed):
                writer.save_note("text", title="Lost")

        assert list(Path(temp_data_dir).iterdir()) == []
