"""Main application entry point for NoteDrop."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .audio.capture import AudioCaptureEngine
from .config import NoteDropConfig
from .errors import NoteDropError
from .events import TRANSCRIPT_UPDATED
from .models.notes import SendResult, SendStatus
from .services.delivery_queue import DeliveryQueueManager
from .sinks.notion import NotionSink
from .storage.note_files import LocalNoteWriter
from .storage.queue_store import PersistedQueueStore, migrate_legacy_directory
from .transcription.stream_client import TranscriptionStreamClient
from .ui.live_transcript import LiveTranscriptView

logger = logging.getLogger(__name__)
console = Console()


class App:
    """Wires the services together from configuration."""

    def __init__(self, config: NoteDropConfig):
        self.config = config

        legacy_dir = config.get('storage.legacy_data_directory')
        if legacy_dir:
            migrate_legacy_directory(legacy_dir, config.get_data_directory())

        self.sink = NotionSink(
            token=config.get('notion.token', ''),
            page_id=config.get('notion.page_id', ''),
            api_version=config.get('notion.api_version'),
            timeout_seconds=float(config.get('notion.timeout_seconds', 15.0)),
        )
        self.queue = DeliveryQueueManager(PersistedQueueStore(config.get_data_directory()), self.sink)
        self.note_writer = LocalNoteWriter(config.get_notes_directory())
        self.stream_client = TranscriptionStreamClient(
            api_key=config.get('transcription.api_key', ''),
            model=config.get('transcription.model'),
            language_hints=config.get('transcription.language_hints', ['en']),
            url=config.get('transcription.url'),
            capture=AudioCaptureEngine(
                device_index=config.get('audio.device_index'),
                buffer_ms=int(config.get('audio.buffer_ms', 50)),
            ),
            finalize_grace_seconds=float(config.get('transcription.finalize_grace_seconds', 0.7)),
            frame_queue_size=int(config.get('transcription.frame_queue_size', 100)),
        )

    async def submit(self, text: str) -> SendResult:
        """Queue a note and try to deliver it right away."""
        note_id = self.queue.enqueue(text)
        result = await self.queue.try_send(note_id)
        if result.status is SendStatus.SENT and self.queue.pending_count:
            # The sink is reachable again; send the backlog too.
            await self.queue.flush()
        return result

    async def dictate(self) -> str:
        """Run one dictation session until Enter is pressed."""
        view = LiveTranscriptView(console=console, pending_count=self.queue.pending_count)
        events = self.stream_client.events
        events.subscribe(view.on_transcript, TRANSCRIPT_UPDATED)
        try:
            await self.stream_client.start()
            with view:
                await asyncio.to_thread(sys.stdin.readline)
            return await self.stream_client.stop()
        finally:
            events.unsubscribe(view.on_transcript, TRANSCRIPT_UPDATED)
            await self.stream_client.stop()


def report(result: SendResult, pending_count: int) -> int:
    """Print a delivery result. Returns the process exit code."""
    if result.status is SendStatus.SENT:
        console.print("[green]✓ Sent[/green]")
        return 0
    if result.status is SendStatus.QUEUED:
        console.print(f"[yellow]Saved, will be sent automatically[/yellow] ({pending_count} waiting)")
        return 0
    console.print(f"[red]{escape(result.message)}[/red] (note kept, {pending_count} waiting)")
    return 2


async def run_command(app: App, args: argparse.Namespace) -> int:
    if args.command == "send":
        text = " ".join(args.text).strip()
        if not text:
            console.print("[red]Nothing to send[/red]")
            return 1
        return report(await app.submit(text), app.queue.pending_count)

    if args.command == "flush":
        delivered = await app.queue.flush()
        console.print(f"Delivered {delivered} notes, {app.queue.pending_count} still waiting")
        return 0 if app.queue.pending_count == 0 else 2

    if args.command == "status":
        notes = app.queue.pending_notes()
        console.print(f"{len(notes)} notes waiting to send")
        for note in notes:
            preview = note.text if len(note.text) <= 60 else note.text[:60] + "…"
            console.print(f"  {note.created_at:%Y-%m-%d %H:%M}  {preview}", markup=False)
        return 0

    if args.command == "dictate":
        text = await app.dictate()
        if not text:
            console.print("[yellow]Nothing was transcribed[/yellow]")
            return 0
        console.print(text, markup=False)
        return report(await app.submit(text), app.queue.pending_count)

    if args.command == "save":
        path = app.note_writer.save_note(" ".join(args.text), title=args.title)
        console.print(f"[green]Saved[/green] {path}")
        return 0

    if args.command == "test-connection":
        ok = await app.sink.test_connection()
        console.print("[green]Connected[/green]" if ok else "[red]Cannot connect[/red]")
        return 0 if ok else 2

    raise ValueError(f"Unknown command: {args.command}")


def setup_logging(config: NoteDropConfig, level: Optional[str] = None) -> None:
    """Set up logging configuration from YAML config."""
    level = level or config.get('logging.level', 'INFO')
    log_file_path = config.get('logging.file_path')
    console_output = config.get('logging.console_output', True)

    handlers = []

    # File handler - always write to file
    if log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        ))
        handlers.append(file_handler)

    # Console handler - only warnings, to keep the live view readable
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("NoteDrop starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notedrop",
        description="NoteDrop - capture notes, deliver them reliably, dictate them live",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: ~/.config/notedrop/notedrop.yaml)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"NoteDrop v{__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    send = commands.add_parser("send", help="Queue a note and send it now")
    send.add_argument("text", nargs="+")

    commands.add_parser("flush", help="Send every waiting note, oldest first")
    commands.add_parser("status", help="List notes waiting to be sent")
    commands.add_parser("dictate", help="Dictate a note with live transcription, then send it")

    save = commands.add_parser("save", help="Save a note as a local Markdown file")
    save.add_argument("text", nargs="+")
    save.add_argument("--title", help="File title (default: derived from the text)")

    commands.add_parser("test-connection", help="Check the Notion token and page")
    return parser


def main(argv=None) -> None:
    """Main entry point for NoteDrop."""
    args = build_parser().parse_args(argv)

    try:
        config = NoteDropConfig(args.config)
    except (FileNotFoundError, NoteDropError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    setup_logging(config, args.log_level)

    try:
        app = App(config)
        exit_code = asyncio.run(run_command(app, args))
    except KeyboardInterrupt:
        console.print("\nInterrupted")
        exit_code = 130
    except NoteDropError as e:
        logger.error(f"Application error: {e}")
        console.print(f"[red]Error:[/red] {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
