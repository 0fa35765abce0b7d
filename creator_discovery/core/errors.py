"""Exception types shared by the query pipeline."""
from typing import Optional


class DiscoveryError(RuntimeError):
    """Base class for creator discovery failures."""


class BackendError(DiscoveryError):
    """Raised when the backend rejects or cannot answer a query."""


class TransientBackendError(BackendError):
    """Raised for failures worth retrying (network errors, timeouts, 5xx)."""


class FetchError(DiscoveryError):
    """Raised when a page or aggregate fetch ultimately fails."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = str(cause) if cause is not None else None


class ClassificationError(DiscoveryError):
    """Raised by the external location classifier; always recovered locally."""
