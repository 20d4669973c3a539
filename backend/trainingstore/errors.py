"""Error taxonomy raised by the training store.

Every error carries the HTTP status code and the client-facing message
the API renders as `{"error": message}`.
"""

from typing import Optional


class StoreError(Exception):
    """Base class for errors surfaced to API clients."""
    status_code = 500
    message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class NotFoundError(StoreError):
    """Referenced project or training example is absent or not visible in scope."""
    status_code = 404
    message = "Not found"


class ValidationError(StoreError):
    """A submitted training payload was rejected before any write."""
    status_code = 400
    message = "Invalid request"


class MissingDataError(ValidationError):
    message = "Missing data"


class EmptyDataError(ValidationError):
    message = "Empty audio is not allowed"


class InvalidDataError(ValidationError):
    message = "Invalid audio input"


class TooLongError(ValidationError):
    message = "Audio exceeds maximum allowed length"


class InvalidProjectError(ValidationError):
    message = "Invalid project type"


class LimitExceededError(StoreError):
    status_code = 409
    message = "Project already has maximum allowed amount of training data"


class AuthorizationError(StoreError):
    """The caller may not act on the requested class/student scope."""
    status_code = 403
    message = "Invalid access"


class StoreTimeoutError(StoreError):
    status_code = 503
    message = "Training store is busy, try again"
