"""Remote note sinks."""

from .base import RemoteNoteSink
from .notion import NotionSink, normalize_page_id

__all__ = [
    "RemoteNoteSink",
    "NotionSink",
    "normalize_page_id",
]
