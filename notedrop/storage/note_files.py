"""Saves notes as Markdown files in a local notes directory."""

import logging
import os
import random
import re
import string
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional, Union

from ..errors import DirectoryCreationFailed, PersistWriteFailed

logger = logging.getLogger(__name__)

FORBIDDEN_FILENAME_CHARS = re.compile(r'[/:\\?*"<>|]')
MAX_TITLE_LENGTH = 60
MAX_NUMBERED_SUFFIX = 99


def fallback_title(text: str) -> str:
    """Derive a title from the note text itself."""
    trimmed = text.strip()
    if not trimmed:
        return "Voice note"
    if len(trimmed) <= MAX_TITLE_LENGTH:
        return trimmed
    return trimmed[:MAX_TITLE_LENGTH] + "…"


def sanitize_title(title: str) -> str:
    """Strip characters that are not allowed in file names."""
    return FORBIDDEN_FILENAME_CHARS.sub("", title)


class LocalNoteWriter:
    """Writes each note to its own dated Markdown file."""

    def __init__(self, notes_dir: Union[str, Path]):
        """Initialize note writer.

        Args:
            notes_dir: Directory for note files; created on first save
        """
        self.notes_dir = Path(notes_dir)
        logger.info(f"LocalNoteWriter initialized with notes_dir: {self.notes_dir}")

    def _ensure_directory(self) -> None:
        try:
            self.notes_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationFailed(self.notes_dir, e) from e

    def build_filename(self, title: str, day: Optional[date] = None) -> str:
        """Pick a file name that does not collide with an existing note.

        Args:
            title: Note title, sanitized here
            day: Date prefix; today if omitted

        Returns:
            File name such as ``2024-05-01 Groceries.md``
        """
        day = day or date.today()
        base = f"{day.isoformat()} {sanitize_title(title)}"

        candidate = f"{base}.md"
        if not (self.notes_dir / candidate).exists():
            return candidate

        for i in range(2, MAX_NUMBERED_SUFFIX + 1):
            candidate = f"{base} {i}.md"
            if not (self.notes_dir / candidate).exists():
                return candidate

        suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
        return f"{base} {suffix}.md"

    def save_note(self, text: str, title: Optional[str] = None) -> Path:
        """Save note text to a new Markdown file.

        Args:
            text: Note body
            title: File title; derived from the text if omitted

        Returns:
            Path of the written file

        Raises:
            DirectoryCreationFailed: If the notes directory cannot be created
            PersistWriteFailed: If the file cannot be written
        """
        self._ensure_directory()
        title = (title or "").strip() or fallback_title(text)
        file_path = self.notes_dir / self.build_filename(title)

        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".note.", suffix=".tmp", dir=self.notes_dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_path, file_path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Error saving note file: {e}")
            raise PersistWriteFailed(e) from e

        logger.info(f"Note saved: {file_path} ({len(text)} chars)")
        return file_path
