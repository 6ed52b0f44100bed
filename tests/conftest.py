"""Pytest configuration and fixtures for NoteDrop tests."""

import asyncio
import json
import logging
import tempfile
from typing import Callable, List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest

from notedrop.events import NOTE_DELIVERED, NOTE_DELIVERY_FAILED, QUEUE_CHANGED, TRANSCRIPT_UPDATED
from notedrop.models.audio import NativeBuffer
from notedrop.sinks.base import RemoteNoteSink
from notedrop.transcription.transport import AbstractTransport


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class EventRecorder:
    """Listens on a service publisher and keeps every message it sends.

    The publisher holds listeners weakly, so keep the recorder referenced.
    """

    def __init__(self, publisher, *topics):
        self.queue_changes = 0
        self.delivered = []
        self.failed = []
        self.updates = []
        listeners = {
            QUEUE_CHANGED: self.on_queue_changed,
            NOTE_DELIVERED: self.on_note_delivered,
            NOTE_DELIVERY_FAILED: self.on_note_delivery_failed,
            TRANSCRIPT_UPDATED: self.on_transcript_updated,
        }
        for topic in topics:
            publisher.subscribe(listeners[topic], topic)

    def on_queue_changed(self):
        self.queue_changes += 1

    def on_note_delivered(self, event):
        self.delivered.append(event)

    def on_note_delivery_failed(self, event):
        self.failed.append(event)

    def on_transcript_updated(self, update):
        self.updates.append(update)


class FakeSink(RemoteNoteSink):
    """Records appended texts; optionally fails or stalls per call."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.appended: List[str] = []
        self.calls = 0
        # Maps call number (1-based) to the exception raised on that call.
        self.failures = {}
        self.fail_always: Optional[Exception] = None

    async def append(self, text: str) -> None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_always is not None:
            raise self.fail_always
        error = self.failures.get(self.calls)
        if error is not None:
            raise error
        self.appended.append(text)

    async def test_connection(self) -> bool:
        return self.fail_always is None


class FakeTransport(AbstractTransport):
    """In-memory transport; inbound messages are fed by the test."""

    def __init__(self):
        self.connected = False
        self.closed = False
        self.sent_text: List[str] = []
        self.sent_bytes: List[bytes] = []
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.on_text: Optional[Callable[[str], None]] = None

    async def connect(self) -> None:
        self.connected = True

    async def send_text(self, message: str) -> None:
        self.sent_text.append(message)
        if self.on_text is not None:
            self.on_text(message)

    async def send_bytes(self, data: bytes) -> None:
        self.sent_bytes.append(data)

    async def receive(self) -> Optional[str]:
        if self.closed:
            return None
        message = await self.inbound.get()
        return message

    def feed(self, payload) -> None:
        self.inbound.put_nowait(payload if isinstance(payload, str) else json.dumps(payload))

    async def close(self) -> None:
        self.closed = True
        self.inbound.put_nowait(None)

    @property
    def handshake(self) -> dict:
        return json.loads(self.sent_text[0])


class FakeCapture:
    """Stands in for AudioCaptureEngine; the test pushes buffers through ``emit``."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.callback = None
        self.started = 0
        self.stopped = 0

    def start(self, callback) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.callback = callback
        self.started += 1

    def stop(self) -> None:
        self.callback = None
        self.stopped += 1

    def emit(self, buffer: NativeBuffer) -> None:
        if self.callback is not None:
            self.callback(buffer)


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def fake_capture():
    return FakeCapture()


@pytest.fixture
def native_buffer():
    """Generate a native float32 sine buffer."""
    def generate(frames: int = 2205, sample_rate: float = 44100.0, channels: int = 2) -> NativeBuffer:
        t = np.arange(frames) / sample_rate
        wave_data = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
        samples = np.repeat(wave_data[:, None], channels, axis=1)
        return NativeBuffer(samples=samples, sample_rate=sample_rate)

    return generate


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'name': 'Test Microphone',
            'defaultSampleRate': 48000.0,
            'maxInputChannels': 2,
        }

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
