"""Audio capture and conversion module."""

from .capture import AudioCaptureEngine
from .resampler import AudioResampler

__all__ = [
    'AudioCaptureEngine',
    'AudioResampler'
]
