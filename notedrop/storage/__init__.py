"""Local storage for pending notes and saved note files."""

from .queue_store import PersistedQueueStore, migrate_legacy_directory
from .note_files import LocalNoteWriter

__all__ = [
    "PersistedQueueStore",
    "migrate_legacy_directory",
    "LocalNoteWriter",
]
