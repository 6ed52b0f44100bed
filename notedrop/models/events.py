"""Event payloads emitted by the delivery queue and the transcription client."""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class TranscriptUpdate:
    """Merged transcript after one inbound message.

    Observers render ``committed + pending`` as the live preview.
    """
    committed: str
    pending: str

    @property
    def preview(self) -> str:
        return self.committed + self.pending


@dataclass(frozen=True)
class NoteDelivered:
    """A pending note reached the remote sink and left the queue."""
    note_id: uuid.UUID


@dataclass(frozen=True)
class NoteDeliveryFailed:
    """A delivery failed permanently until configuration changes.

    The note itself is still queued.
    """
    note_id: uuid.UUID
    message: str
