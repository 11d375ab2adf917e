"""
Error types for VBus Recording Sync.

Every failure the engine surfaces is a SyncError with a ``kind``:

- TransportError: connection failure, timeout, non-success HTTP status
- ProtocolError: malformed listing, unparseable filename, pipeline misuse
- ConfigurationError: missing URL or credentials

SyncJobError wraps whichever of these ended a sync job, together with the
ranges that had been played back before it happened. Any other exception
that ends a job is wrapped in a plain SyncError (kind "sync") first.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for all sync engine errors."""

    kind = "sync"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransportError(SyncError):
    """A request to the device failed or returned a non-2xx status."""

    kind = "transport"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        status: Optional[int] = None,
        url: str = "",
    ):
        super().__init__(message, cause)
        self.status = status
        self.url = url


class ProtocolError(SyncError):
    """The device or a collaborator did something the protocol does not allow."""

    kind = "protocol"


class ConfigurationError(SyncError):
    """Required configuration is missing or invalid."""

    kind = "configuration"


class SyncJobError(SyncError):
    """
    A sync job failed.

    Attributes:
        kind: Kind of the underlying error ("transport", "protocol", ...)
        cause: The underlying SyncError
        played_back_ranges: Ranges delivered to the pipeline before the failure.
            These were NOT committed to sync state.
    """

    def __init__(self, cause: SyncError, played_back_ranges=None):
        super().__init__(f"Sync job failed ({cause.kind}): {cause}", cause)
        self.kind = cause.kind
        self.played_back_ranges = played_back_ranges
