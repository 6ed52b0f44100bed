"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_capturing: bool
    sample_rate: int
    channels: int
    frames_per_buffer: int
    total_buffers: int


@dataclass
class NativeBuffer:
    """One capture callback's worth of audio in the device's native format.

    ``samples`` is a float32 array shaped (frames, channels).
    """
    samples: np.ndarray
    sample_rate: float

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0]) if self.samples.ndim >= 1 else 0


@dataclass
class AudioFrame:
    """Signed 16-bit little-endian mono PCM at 16 kHz, ready to stream."""
    data: bytes

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def sample_count(self) -> int:
        return len(self.data) // 2
