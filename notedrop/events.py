"""Pub/sub topics published by NoteDrop services.

Each service owns its own ``pubsub.core.Publisher``; listeners subscribe to
the service's publisher by topic name and unsubscribe when they go away.
Listeners are called synchronously in the publisher's context and receive
the message data as keyword arguments.
"""

import logging

from pubsub.core import Publisher

from .models.events import NoteDelivered, NoteDeliveryFailed, TranscriptUpdate

logger = logging.getLogger(__name__)

QUEUE_CHANGED = "queue_changed"
NOTE_DELIVERED = "note_delivered"
NOTE_DELIVERY_FAILED = "note_delivery_failed"
TRANSCRIPT_UPDATED = "transcript_updated"


# Topic prototypes: their signatures define the message data of each topic.

def _queue_changed() -> None:
    """Pending notes were added or removed."""


def _note_delivered(event: NoteDelivered) -> None:
    """A note reached the remote sink and left the queue."""


def _note_delivery_failed(event: NoteDeliveryFailed) -> None:
    """A note was rejected in a way that needs user action; it stays queued."""


def _transcript_updated(update: TranscriptUpdate) -> None:
    """The live transcript changed."""


TOPIC_PROTOTYPES = {
    QUEUE_CHANGED: _queue_changed,
    NOTE_DELIVERED: _note_delivered,
    NOTE_DELIVERY_FAILED: _note_delivery_failed,
    TRANSCRIPT_UPDATED: _transcript_updated,
}


def _log_listener_failure(listener_id: str, topic_obj) -> None:
    # Called from inside pypubsub's except block, so exc_info is the listener's error.
    logger.error(f"Listener {listener_id} of topic {topic_obj.getName()} failed", exc_info=True)


def create_publisher(*topics: str) -> Publisher:
    """Create a private publisher with the given topics defined.

    A listener that raises is logged and does not stop delivery to the rest.

    Args:
        topics: Topic names from ``TOPIC_PROTOTYPES``

    Returns:
        Publisher whose topics already carry their message data specification
    """
    publisher = Publisher()
    publisher.setListenerExcHandler(_log_listener_failure)

    topic_mgr = publisher.getTopicMgr()
    for topic in topics:
        topic_mgr.getOrCreateTopic(topic, TOPIC_PROTOTYPES[topic])

    logger.debug(f"Publisher created with topics: {', '.join(topics)}")
    return publisher
