"""Terminal view of a live dictation session."""

import logging
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..models.events import TranscriptUpdate

logger = logging.getLogger(__name__)


def render_transcript(update: TranscriptUpdate, pending_count: Optional[int] = None) -> Panel:
    """Committed text in normal style followed by the pending preview, dimmed."""
    body = Text.assemble(
        (update.committed, "bold white"),
        (update.pending, "dim italic"),
    )
    if not update.preview:
        body = Text("Listening…", style="dim")

    subtitle = "Enter to finish"
    if pending_count:
        subtitle = f"{pending_count} waiting to send  ·  {subtitle}"

    return Panel(body, title="🎙  Dictation", subtitle=subtitle, border_style="bright_blue")


class LiveTranscriptView:
    """Redraws the transcript panel whenever the stream client publishes an update."""

    def __init__(self, console: Optional[Console] = None, pending_count: Optional[int] = None):
        self.console = console or Console()
        self.pending_count = pending_count
        self.last_update = TranscriptUpdate(committed="", pending="")
        self._live: Optional[Live] = None

    def __enter__(self) -> "LiveTranscriptView":
        self._live = Live(
            render_transcript(self.last_update, self.pending_count),
            console=self.console,
            refresh_per_second=10,
            transient=False,
        )
        self._live.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._live is not None:
            self._live.__exit__(exc_type, exc, tb)
            self._live = None

    def on_transcript(self, update: TranscriptUpdate) -> None:
        """Listener for the stream client's ``transcript_updated`` topic."""
        self.last_update = update
        if self._live is not None:
            self._live.update(render_transcript(update, self.pending_count))
