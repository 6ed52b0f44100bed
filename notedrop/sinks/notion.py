"""Notion sink: appends notes as paragraph blocks to a Notion page."""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import ApiError, InvalidConfig, NetworkError
from .base import RemoteNoteSink

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_API_VERSION = "2022-06-28"

# Notion limits: 2000 characters per rich-text segment, 100 blocks per request.
MAX_RICH_TEXT_LENGTH = 2000
MAX_BLOCKS_PER_REQUEST = 100

_HEX_ID = re.compile(r"([0-9a-fA-F]{32})$")


def normalize_page_id(value: str) -> Optional[str]:
    """Extract a Notion page id from a raw id, dashed UUID or page URL.

    Returns:
        Dashed lowercase page id, or None if no id can be found
    """
    if not value:
        return None

    candidate = value.strip().split("?", 1)[0].split("#", 1)[0].rstrip("/")
    # The id is the trailing 32 hex digits; page titles may precede it in URLs.
    match = _HEX_ID.search(candidate.replace("-", ""))
    if match is None:
        return None

    raw = match.group(1).lower()
    return f"{raw[:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:]}"


def build_paragraph_blocks(text: str) -> List[Dict[str, Any]]:
    """Convert note text into Notion paragraph blocks, one per line."""
    blocks = []
    for line in text.split("\n"):
        segments = [line[i:i + MAX_RICH_TEXT_LENGTH]
                    for i in range(0, len(line), MAX_RICH_TEXT_LENGTH)]
        blocks.append({
            "object": "block",
            "type": "paragraph",
            "paragraph": {
                "rich_text": [
                    {"type": "text", "text": {"content": segment}}
                    for segment in segments
                ],
            },
        })
    return blocks


class NotionSink(RemoteNoteSink):
    """Delivers notes to a Notion page through the public REST API."""

    def __init__(self, token: str, page_id: str,
                 api_version: str = NOTION_API_VERSION,
                 timeout_seconds: float = 15.0,
                 base_url: str = NOTION_API_URL):
        """Initialize Notion sink.

        Args:
            token: Notion integration token
            page_id: Target page id or page URL
            api_version: Value for the Notion-Version header
            timeout_seconds: Total timeout for each HTTP request
            base_url: API root, overridable for testing
        """
        self.token = (token or "").strip()
        self.page_id = normalize_page_id(page_id or "")
        self.api_version = api_version
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.base_url = base_url.rstrip("/")

        logger.info(f"NotionSink initialized for page: {self.page_id}")

    @property
    def is_configured(self) -> bool:
        return bool(self.token) and self.page_id is not None

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Notion-Version": self.api_version,
            "Content-Type": "application/json",
        }

    def _check_config(self) -> None:
        if not self.token:
            raise InvalidConfig("Notion token is not configured")
        if self.page_id is None:
            raise InvalidConfig("Notion page id is not configured")

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str:
        body = await response.text()
        try:
            data = await response.json(content_type=None)
        except ValueError:
            return body.strip() or response.reason or "unknown error"
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return body.strip() or response.reason or "unknown error"

    async def append(self, text: str) -> None:
        """Append note text as paragraph blocks at the end of the page."""
        self._check_config()

        blocks = build_paragraph_blocks(text)
        url = f"{self.base_url}/blocks/{self.page_id}/children"

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                for start in range(0, len(blocks), MAX_BLOCKS_PER_REQUEST):
                    payload = {"children": blocks[start:start + MAX_BLOCKS_PER_REQUEST]}
                    async with session.patch(url, headers=self._headers(), json=payload) as response:
                        if not 200 <= response.status < 300:
                            message = await self._error_message(response)
                            raise ApiError(response.status, message)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            logger.warning(f"Notion unreachable: {e!r}")
            raise NetworkError(str(e) or type(e).__name__) from e

        logger.info(f"Appended {len(blocks)} blocks to Notion page {self.page_id}")

    async def test_connection(self) -> bool:
        """Fetch the target page to confirm the token can see it."""
        self._check_config()

        url = f"{self.base_url}/pages/{self.page_id}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url, headers=self._headers()) as response:
                    ok = 200 <= response.status < 300
                    if not ok:
                        logger.warning(f"Notion connection test failed: HTTP {response.status}")
                    return ok
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise NetworkError(str(e) or type(e).__name__) from e
