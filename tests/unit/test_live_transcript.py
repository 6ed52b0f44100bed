"""Unit tests for the live transcript view."""

import io

import pytest
from rich.console import Console

from notedrop.models.events import TranscriptUpdate
from notedrop.ui.live_transcript import LiveTranscriptView, render_transcript


@pytest.mark.unit
class TestRenderTranscript:

    def test_committed_then_pending(self):
        panel = render_transcript(TranscriptUpdate(committed="Hello", pending=" wor"))

        assert panel.renderable.plain == "Hello wor"

    def test_empty_transcript_shows_listening(self):
        panel = render_transcript(TranscriptUpdate(committed="", pending=""))

        assert panel.renderable.plain == "Listening…"

    def test_subtitle_shows_waiting_notes(self):
        panel = render_transcript(TranscriptUpdate(committed="x", pending=""), pending_count=3)

        assert "3 waiting to send" in panel.subtitle
        assert render_transcript(TranscriptUpdate(committed="x", pending="")).subtitle == "Enter to finish"


@pytest.mark.unit
class TestLiveTranscriptView:

    def test_updates_are_kept_outside_live_context(self):
        view = LiveTranscriptView(console=Console(file=io.StringIO()))
        update = TranscriptUpdate(committed="kept", pending="")

        view.on_transcript(update)

        assert view.last_update == update

    def test_live_context_renders_updates(self):
        output = io.StringIO()
        view = LiveTranscriptView(console=Console(file=output, force_terminal=False, width=60))

        with view:
            view.on_transcript(TranscriptUpdate(committed="Dictated text", pending=""))

        assert "Dictated text" in output.getvalue()
