"""Exception definitions for NoteDrop."""


class NoteDropError(Exception):
    """Base exception class for NoteDrop errors."""

    pass


class ConfigurationError(NoteDropError):
    """Raised when the configuration file cannot be loaded or parsed."""

    pass


# Local storage faults. These reach the caller; the core never retries them.


class DirectoryCreationFailed(NoteDropError):
    """Raised when a storage directory cannot be created."""

    def __init__(self, path, cause: Exception = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot create directory: {path}")


class PersistWriteFailed(NoteDropError):
    """Raised when a file cannot be written to local storage."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Write failed: {cause}")


# Remote sink faults. Classified by the delivery queue, never raised past it.


class RemoteSinkError(NoteDropError):
    """Base class for failures reported by a remote note sink."""

    pass


class InvalidConfig(RemoteSinkError):
    """Raised when sink credentials or destination are missing or invalid."""

    pass


class NetworkError(RemoteSinkError):
    """Raised when the sink cannot be reached (no route, timeout, DNS)."""

    pass


class ApiError(RemoteSinkError):
    """Raised when the remote service rejects a request."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"API error {status_code}: {message}")


# Streaming faults. Reported once from start(); the session never becomes active.


class MissingCredential(NoteDropError):
    """Raised when no transcription API key is configured."""

    pass


class AudioSetupFailed(NoteDropError):
    """Raised when the microphone cannot be opened in a usable format."""

    pass


class TransportError(NoteDropError):
    """Raised when the transcription socket cannot be opened."""

    pass
