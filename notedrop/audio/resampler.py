"""Conversion of native capture buffers to 16 kHz mono PCM16."""

import logging
import math
from typing import Optional

import numpy as np
from scipy.signal import resample_poly

from ..models.audio import AudioFrame, NativeBuffer

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000

# resample_poly designs its filter with 10 * max(up, down) taps on each side.
FILTER_HALF_WIDTH = 10


def output_capacity(input_frames: int, input_rate: float, target_rate: int = TARGET_SAMPLE_RATE) -> int:
    """Maximum number of output frames for one input buffer.

    One extra frame keeps rounding from truncating the output.
    """
    return int(round(input_frames * target_rate / input_rate)) + 1


class AudioResampler:
    """Downmixes and resamples native buffers into streamable PCM16 frames.

    Resampling is continuous across buffers: input that the filter still needs
    is carried over to the next call, and output samples are held back until
    the input after them has arrived. This delays the stream by the filter
    half-width (under 1 ms at common rates).

    Unusable buffers return None; the frame is dropped and capture continues.
    """

    def __init__(self, target_rate: int = TARGET_SAMPLE_RATE):
        self.target_rate = target_rate
        self.dropped_frames = 0
        self.reset()

    def reset(self) -> None:
        """Forget carried-over input, e.g. at the start of a new session."""
        self._rate: Optional[int] = None
        self._history = np.zeros(0, dtype=np.float32)
        self._emitted = 0

    def convert(self, buffer: NativeBuffer) -> Optional[AudioFrame]:
        """Convert one native buffer.

        Args:
            buffer: float32 samples shaped (frames, channels) or (frames,)

        Returns:
            AudioFrame with PCM16LE mono samples, or None if the buffer is
            unusable or all of its output is still held back
        """
        samples = buffer.samples
        rate = int(round(buffer.sample_rate or 0))

        if rate <= 0 or samples.size == 0 or samples.ndim not in (1, 2):
            self._drop(f"unusable buffer (rate={buffer.sample_rate}, shape={samples.shape})")
            return None

        mono = samples if samples.ndim == 1 else samples.mean(axis=1)
        mono = np.asarray(mono, dtype=np.float32)
        if not np.all(np.isfinite(mono)):
            self._drop("non-finite samples")
            return None

        if rate != self._rate:
            if self._rate is not None:
                logger.debug(f"Input rate changed {self._rate} -> {rate}Hz, restarting resampler")
            self.reset()
            self._rate = rate

        capacity = output_capacity(mono.shape[0], rate, self.target_rate)
        if rate == self.target_rate:
            resampled = mono[:capacity]
        else:
            resampled = self._resample_continuous(mono, rate, capacity)

        if resampled.size == 0:
            return None

        pcm = np.clip(resampled * 32767.0, -32768, 32767).astype("<i2")
        return AudioFrame(data=pcm.tobytes())

    def _resample_continuous(self, mono: np.ndarray, rate: int, capacity: int) -> np.ndarray:
        divisor = math.gcd(self.target_rate, rate)
        up, down = self.target_rate // divisor, rate // divisor
        # Input samples the filter reaches on either side of an output sample.
        support = math.ceil(FILTER_HALF_WIDTH * max(up, down) / up) + 1

        signal = np.concatenate([self._history, mono])
        resampled = resample_poly(signal, up, down)

        # Output k sits at input position k * down / up and is final once
        # `support` input samples follow it. Output beyond `capacity` stays held back.
        ready = max(0, (signal.shape[0] - support) * up // down)
        ready = min(ready, self._emitted + capacity)
        out = resampled[self._emitted:ready]
        self._emitted = max(self._emitted, ready)

        # Keep `support` samples before the next output. Trimming in multiples
        # of `down` keeps the output grid aligned.
        trim = max(0, (self._emitted * down // up - support) // down * down)
        self._history = signal[trim:]
        self._emitted -= trim * up // down
        return out

    def _drop(self, reason: str) -> None:
        self.dropped_frames += 1
        logger.debug(f"Dropped audio frame: {reason}")
