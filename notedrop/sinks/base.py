"""Abstract base class for remote note sinks."""

from abc import ABC, abstractmethod


class RemoteNoteSink(ABC):
    """A remote document store that notes are appended to."""

    @abstractmethod
    async def append(self, text: str) -> None:
        """Append note text to the remote document.

        Args:
            text: Note text

        Raises:
            InvalidConfig: If credentials or destination are missing or invalid
            NetworkError: If the remote service cannot be reached
            ApiError: If the remote service rejects the request
        """
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """Check that the sink is reachable and the destination is accessible.

        Returns:
            True if the destination can be written to
        """
        pass
