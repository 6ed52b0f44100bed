"""Socket transports for the streaming transcription client."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from ..errors import TransportError

logger = logging.getLogger(__name__)


class AbstractTransport(ABC):
    """A message-oriented, bidirectional connection to the transcription service."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection.

        Raises:
            TransportError: If the connection cannot be established
        """
        pass

    @abstractmethod
    async def send_text(self, message: str) -> None:
        pass

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None:
        pass

    @abstractmethod
    async def receive(self) -> Optional[str]:
        """Wait for the next text message.

        Returns:
            Message text, or None once the connection is closed or broken
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        pass


class AiohttpWebSocketTransport(AbstractTransport):
    """WebSocket transport built on an aiohttp client session."""

    def __init__(self, url: str, connect_timeout: float = 10.0):
        """Initialize transport.

        Args:
            url: WebSocket endpoint (wss://...)
            connect_timeout: Timeout for the opening handshake
        """
        self.url = url
        self.connect_timeout = connect_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

    async def connect(self) -> None:
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, connect=self.connect_timeout)
        )
        try:
            self._ws = await self._session.ws_connect(self.url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            await self._session.close()
            self._session = None
            raise TransportError(f"Could not connect to {self.url}: {e}") from e
        logger.info(f"Connected to {self.url}")

    def _require_ws(self) -> aiohttp.ClientWebSocketResponse:
        if self._ws is None or self._ws.closed:
            raise ConnectionResetError("WebSocket is not open")
        return self._ws

    async def send_text(self, message: str) -> None:
        await self._require_ws().send_str(message)

    async def send_bytes(self, data: bytes) -> None:
        await self._require_ws().send_bytes(data)

    async def receive(self) -> Optional[str]:
        ws = self._ws
        if ws is None:
            return None
        while True:
            try:
                msg = await ws.receive()
            except (aiohttp.ClientError, asyncio.TimeoutError, RuntimeError) as e:
                logger.debug(f"WebSocket receive ended: {e!r}")
                return None
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING,
                            aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                logger.debug(f"WebSocket closed: {msg.type.name} {msg.extra or ''}")
                return None

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        logger.debug("WebSocket transport closed")
