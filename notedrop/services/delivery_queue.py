"""Durable delivery queue for notes bound for a remote sink."""

import asyncio
import logging
import threading
import uuid
from typing import List, Optional, Set

from ..errors import ApiError, InvalidConfig, NetworkError
from ..events import NOTE_DELIVERED, NOTE_DELIVERY_FAILED, QUEUE_CHANGED, create_publisher
from ..models.events import NoteDelivered, NoteDeliveryFailed
from ..models.notes import PendingNote, SendResult, SendStatus
from ..sinks.base import RemoteNoteSink
from ..storage.queue_store import PersistedQueueStore

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


def classify_failure(error: BaseException) -> SendResult:
    """Map a sink failure to a retry decision.

    Server faults, rate limiting, connectivity loss and unknown errors are
    retried later. Configuration faults and other rejections are not.
    """
    if isinstance(error, InvalidConfig):
        return SendResult.config_error(f"Sink is not configured: {error}. Note kept.")
    if isinstance(error, NetworkError):
        return SendResult.queued()
    if isinstance(error, ApiError):
        if error.status_code >= 500 or error.status_code == RATE_LIMIT_STATUS:
            return SendResult.queued()
        return SendResult.config_error(error.message)
    return SendResult.queued()


class DeliveryQueueManager:
    """Persists pending notes and delivers them, one attempt per note at a time.

    All access to the snapshot and the in-flight set goes through one lock.
    The lock is never held while the sink is being called, so attempts on
    different notes can overlap on the network.
    """

    def __init__(self, store: PersistedQueueStore, sink: RemoteNoteSink):
        """Initialize delivery queue.

        Args:
            store: File storage for the queue snapshot
            sink: Remote destination for notes
        """
        self.store = store
        self.sink = sink

        self._lock = threading.Lock()
        self._notes: List[PendingNote] = store.load()
        self._in_flight: Set[uuid.UUID] = set()
        self._flush_tasks: Set[asyncio.Task] = set()

        # Topics: queue_changed, note_delivered, note_delivery_failed
        self.events = create_publisher(QUEUE_CHANGED, NOTE_DELIVERED, NOTE_DELIVERY_FAILED)

        logger.info(f"DeliveryQueueManager initialized with {len(self._notes)} pending notes")

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._notes)

    def pending_notes(self) -> List[PendingNote]:
        """Snapshot of pending notes, oldest first."""
        with self._lock:
            return list(self._notes)

    def is_in_flight(self, note_id: uuid.UUID) -> bool:
        with self._lock:
            return note_id in self._in_flight

    def enqueue(self, text: str) -> uuid.UUID:
        """Add a note and persist the queue before returning.

        Raises:
            PersistWriteFailed: If the queue cannot be saved; the note is not kept
        """
        note = PendingNote(text=text)
        with self._lock:
            notes = self._notes + [note]
            self.store.save(notes)
            self._notes = notes

        logger.info(f"Enqueued note {note.id} ({len(text)} chars)")
        self.events.sendMessage(QUEUE_CHANGED)
        return note.id

    def remove(self, note_id: uuid.UUID) -> None:
        """Drop a note from the queue whether or not it is being delivered."""
        with self._lock:
            self._remove_locked(note_id)
        self.events.sendMessage(QUEUE_CHANGED)

    def _remove_locked(self, note_id: uuid.UUID) -> None:
        notes = [note for note in self._notes if note.id != note_id]
        self._in_flight.discard(note_id)
        if len(notes) != len(self._notes):
            self.store.save(notes)
            self._notes = notes
            logger.debug(f"Removed note {note_id}")

    def _release(self, note_id: uuid.UUID) -> None:
        with self._lock:
            self._in_flight.discard(note_id)

    async def _deliver(self, note: PendingNote) -> SendResult:
        """Call the sink for a note already marked in-flight."""
        try:
            await self.sink.append(note.text)
        except asyncio.CancelledError:
            self._release(note.id)
            raise
        except Exception as e:
            self._release(note.id)
            result = classify_failure(e)
            logger.warning(f"Delivery of note {note.id} failed ({result.status.value}): {e!r}")
            if result.message is not None:
                self.events.sendMessage(NOTE_DELIVERY_FAILED, event=NoteDeliveryFailed(note.id, result.message))
            return result

        try:
            self.remove(note.id)
        finally:
            self._release(note.id)

        logger.info(f"Delivered note {note.id}")
        self.events.sendMessage(NOTE_DELIVERED, event=NoteDelivered(note.id))
        return SendResult.sent()

    async def try_send(self, note_id: uuid.UUID) -> SendResult:
        """Attempt delivery of one note.

        Returns:
            SENT if delivered or no longer queued, QUEUED to retry later,
            CONFIG_ERROR when delivery cannot succeed until configuration changes
        """
        with self._lock:
            note = next((n for n in self._notes if n.id == note_id), None)
            if note is None:
                return SendResult.sent()
            if note_id in self._in_flight:
                logger.debug(f"Note {note_id} already in flight")
                return SendResult.queued()
            self._in_flight.add(note_id)

        return await self._deliver(note)

    async def flush_all(self) -> int:
        """Deliver pending notes oldest first until one fails.

        A single failure of any kind ends the sweep; later notes wait for the
        next flush.

        Returns:
            Number of notes delivered
        """
        delivered = 0
        while True:
            with self._lock:
                note = next((n for n in self._notes if n.id not in self._in_flight), None)
                if note is None:
                    break
                self._in_flight.add(note.id)

            result = await self._deliver(note)
            if result.status is not SendStatus.SENT:
                logger.info(f"Flush paused after {delivered} notes: {result.status.value}")
                break
            delivered += 1

        if delivered:
            logger.info(f"Flush delivered {delivered} notes")
        return delivered

    def flush(self) -> asyncio.Task:
        """Start a background sweep on the running event loop.

        Safe to call repeatedly; concurrent sweeps never send the same note twice.
        """
        task = asyncio.get_running_loop().create_task(self.flush_all())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_done)
        return task

    def _flush_done(self, task: asyncio.Task) -> None:
        self._flush_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Flush failed: {error}", exc_info=error)

    async def aclose(self, timeout: Optional[float] = None) -> None:
        """Wait for background flushes to finish."""
        tasks = list(self._flush_tasks)
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
