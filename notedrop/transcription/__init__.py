"""Streaming transcription module for NoteDrop."""

from .protocol import SessionConfig, Token, TokenMessage, TranscriptState, decode_message
from .transport import AbstractTransport, AiohttpWebSocketTransport
from .stream_client import SessionState, TranscriptionStreamClient

__all__ = [
    "SessionConfig",
    "Token",
    "TokenMessage",
    "TranscriptState",
    "decode_message",
    "AbstractTransport",
    "AiohttpWebSocketTransport",
    "SessionState",
    "TranscriptionStreamClient",
]
