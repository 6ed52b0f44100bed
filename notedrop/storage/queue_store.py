"""Atomic file storage for the pending-note queue."""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

from ..errors import DirectoryCreationFailed, PersistWriteFailed
from ..models.notes import PendingNote

logger = logging.getLogger(__name__)

QUEUE_FILENAME = "pending-notes.json"


def migrate_legacy_directory(old_dir: Union[str, Path], new_dir: Union[str, Path]) -> bool:
    """Move a data directory from a previous install location.

    Only runs when the old directory exists and the new one does not.

    Returns:
        True if the directory was moved
    """
    old_dir, new_dir = Path(old_dir), Path(new_dir)
    if not old_dir.is_dir() or new_dir.exists():
        return False

    try:
        new_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(old_dir), str(new_dir))
    except OSError as e:
        logger.warning(f"Could not migrate {old_dir} to {new_dir}: {e}")
        return False

    logger.info(f"Migrated data directory {old_dir} -> {new_dir}")
    return True


class PersistedQueueStore:
    """Reads and writes the pending-note list as a single JSON file.

    The file is either absent (empty queue) or a complete JSON array.
    """

    def __init__(self, data_dir: Union[str, Path], filename: str = QUEUE_FILENAME):
        """Initialize the store.

        Args:
            data_dir: Directory holding the queue file; created if missing
            filename: Queue file name inside ``data_dir``

        Raises:
            DirectoryCreationFailed: If ``data_dir`` cannot be created
        """
        self.data_dir = Path(data_dir)
        self.file_path = self.data_dir / filename

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationFailed(self.data_dir, e) from e

        logger.info(f"PersistedQueueStore initialized: {self.file_path}")

    def load(self) -> List[PendingNote]:
        """Load the queue snapshot.

        Returns:
            Notes in insertion order; empty if the file is absent or corrupt
        """
        if not self.file_path.exists():
            return []

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, list):
                raise ValueError(f"expected a JSON array, got {type(raw).__name__}")
            return [PendingNote.from_dict(entry) for entry in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable queue file {self.file_path}: {e}")
            return []

    def save(self, notes: Sequence[PendingNote]) -> None:
        """Replace the queue snapshot atomically.

        An empty sequence removes the file.

        Raises:
            PersistWriteFailed: If the snapshot cannot be written
        """
        try:
            if not notes:
                self.file_path.unlink(missing_ok=True)
                logger.debug("Queue empty, removed queue file")
                return

            payload = json.dumps([note.to_dict() for note in notes], ensure_ascii=False, indent=2)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.file_path.name}.", suffix=".tmp", dir=self.data_dir
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.file_path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Error saving queue file {self.file_path}: {e}")
            raise PersistWriteFailed(e) from e

        logger.debug(f"Saved {len(notes)} pending notes")
