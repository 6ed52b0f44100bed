"""Wire messages for the streaming transcription service and transcript merging."""

import json
import logging
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..models.events import TranscriptUpdate

logger = logging.getLogger(__name__)

FINALIZE_MESSAGE = json.dumps({"type": "finalize"})


class SessionConfig(BaseModel):
    """Handshake sent once when a session opens."""
    api_key: str
    model: str
    audio_format: str = "pcm_s16le"
    sample_rate: int = 16000
    num_channels: int = 1
    language_hints: List[str] = Field(default_factory=list)
    language_hints_strict: bool = True
    enable_language_identification: bool = True
    enable_endpoint_detection: bool = False
    enable_non_final_tokens: bool = True

    def to_json(self) -> str:
        return self.model_dump_json()


class Token(BaseModel):
    text: Optional[str] = None
    is_final: bool = False

    @property
    def is_visible(self) -> bool:
        """False for missing text and for markers such as ``<fin>`` or ``<unk>``."""
        if self.text is None:
            return False
        return not (self.text.startswith("<") and self.text.endswith(">"))


class TokenMessage(BaseModel):
    """Inbound message; fields other than ``tokens`` are ignored."""
    tokens: List[Token]


def decode_message(raw: str) -> Optional[TokenMessage]:
    """Parse an inbound text message, or None if it is not a token message."""
    try:
        return TokenMessage.model_validate_json(raw)
    except ValidationError as e:
        logger.debug(f"Ignoring undecodable message: {e.error_count()} errors")
        return None


class TranscriptState:
    """Committed and pending text for one session.

    Committed text only grows. Pending text is replaced by every message.
    """

    def __init__(self):
        self.committed = ""
        self.pending = ""

    def apply(self, message: TokenMessage) -> TranscriptUpdate:
        """Merge one message and return the resulting transcript."""
        final_parts = []
        pending_parts = []
        for token in message.tokens:
            if not token.is_visible:
                continue
            if token.is_final:
                final_parts.append(token.text)
            else:
                pending_parts.append(token.text)

        self.committed += "".join(final_parts)
        self.pending = "".join(pending_parts)
        return TranscriptUpdate(committed=self.committed, pending=self.pending)

    def snapshot(self) -> TranscriptUpdate:
        return TranscriptUpdate(committed=self.committed, pending=self.pending)
