"""Data models for the NoteDrop application."""

from .notes import PendingNote, SendStatus, SendResult
from .audio import AudioStats, NativeBuffer, AudioFrame
from .events import TranscriptUpdate, NoteDelivered, NoteDeliveryFailed

__all__ = [
    "PendingNote",
    "SendStatus",
    "SendResult",
    "AudioStats",
    "NativeBuffer",
    "AudioFrame",
    "TranscriptUpdate",
    "NoteDelivered",
    "NoteDeliveryFailed",
]
