"""Data models for pending notes and delivery results."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingNote:
    """A captured note not yet confirmed delivered to the remote sink."""
    text: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the persisted queue file format."""
        return {
            "id": str(self.id),
            "text": self.text,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingNote":
        """Build a note from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: If the entry is malformed
        """
        for key in ("id", "text", "createdAt"):
            if not isinstance(data[key], str):
                raise TypeError(f"Note field {key!r} must be a string, got {type(data[key]).__name__}")
        return cls(
            text=data["text"],
            id=uuid.UUID(data["id"]),
            created_at=datetime.fromisoformat(data["createdAt"]),
        )


class SendStatus(Enum):
    """Outcome of a single delivery attempt."""
    SENT = "sent"
    QUEUED = "queued"
    CONFIG_ERROR = "config_error"


@dataclass(frozen=True)
class SendResult:
    """Result of DeliveryQueueManager.try_send."""
    status: SendStatus
    message: Optional[str] = None

    @classmethod
    def sent(cls) -> "SendResult":
        return cls(SendStatus.SENT)

    @classmethod
    def queued(cls) -> "SendResult":
        return cls(SendStatus.QUEUED)

    @classmethod
    def config_error(cls, message: str) -> "SendResult":
        return cls(SendStatus.CONFIG_ERROR, message)
