"""Streaming speech-to-text session: microphone in, merged transcript out."""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..audio.capture import AudioCaptureEngine
from ..audio.resampler import AudioResampler, TARGET_SAMPLE_RATE
from ..errors import MissingCredential
from ..events import TRANSCRIPT_UPDATED, create_publisher
from ..models.audio import AudioFrame, NativeBuffer
from .protocol import FINALIZE_MESSAGE, SessionConfig, TranscriptState, decode_message
from .transport import AbstractTransport, AiohttpWebSocketTransport

logger = logging.getLogger(__name__)

DEFAULT_URL = "wss://stt-rt.soniox.com/transcribe-websocket"
DEFAULT_MODEL = "stt-rt-v4"
DEFAULT_FINALIZE_GRACE_SECONDS = 0.7
DEFAULT_FRAME_QUEUE_SIZE = 100
WRITER_DRAIN_TIMEOUT_SECONDS = 1.0
RECEIVER_JOIN_TIMEOUT_SECONDS = 1.0


class SessionState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    FINALIZING = "finalizing"


class TranscriptionStreamClient:
    """Runs one live transcription session at a time.

    Audio arrives on the capture thread, is resampled there, and is handed to
    the event loop without waiting. A single writer task sends frames in order;
    a receive task merges inbound tokens and sends them on the
    ``transcript_updated`` topic of ``events``.
    """

    def __init__(self,
                 api_key: str,
                 model: str = DEFAULT_MODEL,
                 language_hints: Sequence[str] = ("en",),
                 url: str = DEFAULT_URL,
                 transport_factory: Optional[Callable[[], AbstractTransport]] = None,
                 capture: Optional[AudioCaptureEngine] = None,
                 resampler: Optional[AudioResampler] = None,
                 finalize_grace_seconds: float = DEFAULT_FINALIZE_GRACE_SECONDS,
                 frame_queue_size: int = DEFAULT_FRAME_QUEUE_SIZE):
        """Initialize streaming client.

        Args:
            api_key: Transcription service API key
            model: Model identifier sent in the handshake
            language_hints: Expected languages, most likely first
            url: Service endpoint used by the default transport
            transport_factory: Builds a fresh transport per session
            capture: Microphone capture engine
            resampler: Converter from native buffers to 16 kHz PCM16
            finalize_grace_seconds: Wait after ``finalize`` for trailing tokens
            frame_queue_size: Frames buffered between capture and writer before dropping
        """
        self.api_key = (api_key or "").strip()
        self.model = model
        self.language_hints: List[str] = list(language_hints)
        self.transport_factory = transport_factory or (lambda: AiohttpWebSocketTransport(url))
        self.capture = capture or AudioCaptureEngine()
        self.resampler = resampler or AudioResampler()
        self.finalize_grace_seconds = finalize_grace_seconds
        self.frame_queue_size = frame_queue_size

        self.events = create_publisher(TRANSCRIPT_UPDATED)

        self._state = SessionState.IDLE
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._transport: Optional[AbstractTransport] = None
        self._transcript: Optional[TranscriptState] = None
        self._frames: Optional[asyncio.Queue] = None
        self._writer_task: Optional[asyncio.Task] = None
        self._receiver_task: Optional[asyncio.Task] = None
        self.dropped_frames = 0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def state(self) -> SessionState:
        return self._state

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            api_key=self.api_key,
            model=self.model,
            sample_rate=TARGET_SAMPLE_RATE,
            language_hints=self.language_hints,
        )

    async def start(self) -> None:
        """Open a session and start streaming microphone audio.

        Raises:
            MissingCredential: If no API key is configured
            TransportError: If the service cannot be reached
            AudioSetupFailed: If the microphone cannot be opened
        """
        if not self.api_key:
            raise MissingCredential("Transcription API key is not configured")
        if self._state is not SessionState.IDLE:
            logger.warning(f"Session already {self._state.value}")
            return

        # Claim the session before the first await so overlapping calls see it taken.
        self._state = SessionState.STARTING
        self._loop = asyncio.get_running_loop()
        self._transcript = TranscriptState()
        self._frames = asyncio.Queue(maxsize=self.frame_queue_size)
        self.dropped_frames = 0
        self.resampler.reset()

        transport = None
        try:
            transport = self.transport_factory()
            await transport.connect()
            await transport.send_text(self.session_config().to_json())
            self.capture.start(self._on_audio)
        except BaseException:
            try:
                if transport is not None:
                    await transport.close()
            finally:
                self._reset()
            raise

        self._transport = transport
        self._state = SessionState.ACTIVE
        self._writer_task = self._loop.create_task(self._write_frames(transport, self._frames))
        self._receiver_task = self._loop.create_task(self._receive_messages(transport, self._transcript))
        logger.info(f"Transcription session started (model={self.model}, hints={self.language_hints})")

    async def stop(self) -> str:
        """Finish the session and return the committed transcript.

        Returns:
            Committed text without surrounding whitespace; "" if no session was active
        """
        if self._state is not SessionState.ACTIVE:
            return ""
        self._state = SessionState.FINALIZING

        self.capture.stop()
        await self._drain_writer()

        transport = self._transport
        try:
            await transport.send_text(FINALIZE_MESSAGE)
        except Exception as e:
            logger.warning(f"Could not send finalize: {e!r}")
        await asyncio.sleep(self.finalize_grace_seconds)

        try:
            await transport.close()
        except Exception as e:
            logger.warning(f"Error closing transport: {e!r}")
        await self._join(self._receiver_task, RECEIVER_JOIN_TIMEOUT_SECONDS)

        text = self._transcript.committed.strip()
        logger.info(f"Transcription session stopped: {len(text)} chars, "
                    f"{self.dropped_frames + self.resampler.dropped_frames} frames dropped")
        self._reset()
        return text

    def _reset(self) -> None:
        self._transport = None
        self._transcript = None
        self._frames = None
        self._writer_task = None
        self._receiver_task = None
        self._state = SessionState.IDLE

    # Capture thread side

    def _on_audio(self, buffer: NativeBuffer) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        frame = self.resampler.convert(buffer)
        if frame is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue_frame, frame)
        except RuntimeError:
            # Event loop already closed.
            return

    # Event loop side

    def _enqueue_frame(self, frame: AudioFrame) -> None:
        if self._state is not SessionState.ACTIVE or self._frames is None:
            return
        try:
            self._frames.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped_frames += 1
            logger.debug("Frame queue full, dropping audio frame")

    async def _write_frames(self, transport: AbstractTransport, frames: asyncio.Queue) -> None:
        while True:
            frame = await frames.get()
            if frame is None:
                return
            try:
                await transport.send_bytes(frame.data)
            except Exception as e:
                logger.debug(f"Dropping frame after send failure: {e!r}")

    async def _drain_writer(self) -> None:
        try:
            self._frames.put_nowait(None)
        except asyncio.QueueFull:
            self._writer_task.cancel()
        await self._join(self._writer_task, WRITER_DRAIN_TIMEOUT_SECONDS)

    async def _receive_messages(self, transport: AbstractTransport, transcript: TranscriptState) -> None:
        while True:
            try:
                raw = await transport.receive()
            except Exception as e:
                logger.debug(f"Receive loop ended: {e!r}")
                return
            if raw is None:
                logger.debug("Transport closed, receive loop ending")
                return

            message = decode_message(raw)
            if message is None:
                continue
            self.events.sendMessage(TRANSCRIPT_UPDATED, update=transcript.apply(message))

    @staticmethod
    async def _join(task: Optional[asyncio.Task], timeout: float) -> None:
        if task is None:
            return
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
