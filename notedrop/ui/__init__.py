"""Terminal user interface for NoteDrop."""

from .live_transcript import LiveTranscriptView, render_transcript

__all__ = [
    "LiveTranscriptView",
    "render_transcript",
]
