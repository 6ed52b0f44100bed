"""Services layer for NoteDrop application logic."""

from .delivery_queue import DeliveryQueueManager, classify_failure

__all__ = [
    "DeliveryQueueManager",
    "classify_failure",
]
