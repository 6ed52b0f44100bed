"""Microphone capture delivering native-format buffers on the PortAudio callback thread."""

import logging
import threading
from typing import Callable, Optional

import numpy as np
import pyaudio

from ..errors import AudioSetupFailed
from ..models.audio import AudioStats, NativeBuffer

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_MS = 50


class AudioCaptureEngine:
    """Opens the input device in its native format and hands each buffer to a callback.

    The callback runs on PortAudio's callback thread. It must return quickly
    and must not wait on the network.
    """

    def __init__(self, device_index: Optional[int] = None, buffer_ms: int = DEFAULT_BUFFER_MS):
        """Initialize audio capture.

        Args:
            device_index: PyAudio input device index; None for the default device
            buffer_ms: Approximate duration of each delivered buffer
        """
        self.device_index = device_index
        self.buffer_ms = buffer_ms

        self.sample_rate: Optional[float] = None
        self.channels: Optional[int] = None
        self.frames_per_buffer = 0
        self.total_buffers = 0
        self.is_capturing = False

        self._callback: Optional[Callable[[NativeBuffer], None]] = None
        self._lock = threading.Lock()
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None

    def _negotiate_format(self) -> None:
        if self.device_index is None:
            info = self.pyaudio_instance.get_default_input_device_info()
        else:
            info = self.pyaudio_instance.get_device_info_by_index(self.device_index)

        sample_rate = float(info.get("defaultSampleRate") or 0)
        channels = min(int(info.get("maxInputChannels") or 0), 2)
        if sample_rate <= 0 or channels <= 0:
            raise AudioSetupFailed(f"Input device reports no usable format: {info.get('name')}")

        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_buffer = max(1, int(sample_rate * self.buffer_ms / 1000))

    def _stream_callback(self, in_data, frame_count, time_info, status_flags):
        with self._lock:
            callback = self._callback
        if callback is None or not in_data:
            return (None, pyaudio.paContinue)

        samples = np.frombuffer(in_data, dtype=np.float32).reshape(-1, self.channels)
        self.total_buffers += 1
        try:
            callback(NativeBuffer(samples=samples, sample_rate=self.sample_rate))
        except Exception as e:
            logger.error(f"Audio callback failed: {e}", exc_info=True)
        return (None, pyaudio.paContinue)

    def start(self, callback: Callable[[NativeBuffer], None]) -> None:
        """Open the microphone and start delivering buffers to ``callback``.

        Raises:
            AudioSetupFailed: If the device or its format cannot be opened
        """
        if self.is_capturing:
            logger.warning("Capture already in progress")
            return

        with self._lock:
            self._callback = callback
        self.total_buffers = 0

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self._negotiate_format()
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=int(self.sample_rate),
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._stream_callback,
            )
            self.stream.start_stream()
        except AudioSetupFailed:
            self._release()
            raise
        except (OSError, ValueError) as e:
            self._release()
            raise AudioSetupFailed(f"Could not open microphone: {e}") from e

        self.is_capturing = True
        logger.info(f"Audio capture started: {self.sample_rate:.0f}Hz, "
                    f"{self.channels} channels, {self.frames_per_buffer} frames/buffer")

    def stop(self) -> None:
        """Stop capture and unregister the callback."""
        with self._lock:
            self._callback = None
        if not self.is_capturing and self.pyaudio_instance is None:
            return

        self._release()
        self.is_capturing = False
        logger.info(f"Audio capture stopped. Total buffers: {self.total_buffers}")

    def _release(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def get_capture_stats(self) -> AudioStats:
        """Get current capture statistics."""
        return AudioStats(
            is_capturing=self.is_capturing,
            sample_rate=int(self.sample_rate or 0),
            channels=self.channels or 0,
            frames_per_buffer=self.frames_per_buffer,
            total_buffers=self.total_buffers,
        )
