"""Error taxonomy shared by the store, service and HTTP layers."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for failures that map onto an HTTP status."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """A request field is missing or malformed."""


class MissingFieldError(ValidationError):
    pass


class InvalidFieldError(ValidationError):
    pass


class DuplicateError(TrackerError):
    """A unique constraint was violated by the store."""


class NotFoundError(TrackerError):
    """A referenced record does not exist."""


class StoreError(TrackerError):
    """The document store failed; the message is never shown to clients."""

    def __init__(self, message: str = "Server error") -> None:
        super().__init__(message)


_STATUS_BY_ERROR: tuple[tuple[type[TrackerError], int], ...] = (
    (ValidationError, 400),
    (DuplicateError, 400),
    (NotFoundError, 404),
    (StoreError, 500),
)


def status_for(exc: TrackerError) -> int:
    """Return the HTTP status code for a tracker error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def client_message(exc: TrackerError) -> str:
    """Return the message safe to expose in a response body."""
    if status_for(exc) >= 500:
        return "Server error"
    return exc.message
