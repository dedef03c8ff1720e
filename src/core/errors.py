"""Error kinds raised by the sync layer."""


class SyncError(Exception):
    """Base class for failures talking to the recruiting API."""


class TransportFailure(SyncError):
    """The HTTP exchange did not complete (DNS, refused connection, reset...)."""


class HTTPFailure(SyncError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, message: str | None = None) -> None:
        self.status = status
        self.message = message
        super().__init__(message or f"HTTP {status}")


class MalformedResponse(SyncError):
    """The body could not be parsed into the expected shape."""
