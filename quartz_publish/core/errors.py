"""Error taxonomy for remote repository and publish operations."""

from typing import Any


class RemoteRepositoryError(Exception):
    """Exception raised for remote repository errors."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class NetworkError(RemoteRepositoryError):
    """Transient transport failure; the caller may retry."""


class RateLimitedError(RemoteRepositoryError):
    """The remote refused the call because of its rate limit."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
        reset_at: float | None = None,
    ) -> None:
        super().__init__(message, status_code, response)
        self.reset_at = reset_at


class NotFoundError(RemoteRepositoryError):
    """The remote object does not exist."""


class ConflictError(RemoteRepositoryError):
    """A version precondition did not match the remote version."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
        remote_version: str | None = None,
    ) -> None:
        super().__init__(message, status_code, response)
        self.remote_version = remote_version


class ValidationError(Exception):
    """A request was rejected before reaching the remote."""


class AbortedError(Exception):
    """The caller cancelled the operation."""


class ErrorKind:
    """Short error classifications reported in per-item results."""

    NETWORK = "network_error"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    ABORTED = "aborted"
    UNKNOWN = "unknown"


def classify_error(error: BaseException) -> str:
    """Map an exception to an ``ErrorKind`` value."""
    # Subclasses first: RateLimitedError and friends share a base class
    if isinstance(error, RateLimitedError):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, ConflictError):
        return ErrorKind.CONFLICT
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, NetworkError):
        return ErrorKind.NETWORK
    if isinstance(error, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(error, AbortedError):
        return ErrorKind.ABORTED
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN
