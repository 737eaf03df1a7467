"""Error taxonomy shared by the service layers.

Each error carries the HTTP status it maps to and a message that is safe to
show to clients. The API turns any :class:`TaskTrackerError` into a JSON
body of the form ``{"error": message}``.
"""


class TaskTrackerError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    message = "Something went wrong!"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(TaskTrackerError):
    status_code = 400
    message = "Invalid request"


class DuplicateIdentity(TaskTrackerError):
    status_code = 400
    message = "Username or email already exists"


class InvalidCredentials(TaskTrackerError):
    status_code = 401
    message = "Invalid credentials"


class Unauthorized(TaskTrackerError):
    status_code = 401
    message = "Access token required"


class TokenInvalid(TaskTrackerError):
    status_code = 403
    message = "Invalid token"


class TokenExpired(TokenInvalid):
    """Expired tokens answer exactly like malformed ones."""


class NotFound(TaskTrackerError):
    status_code = 404
    message = "Not found"


class StorageError(TaskTrackerError):
    status_code = 500
    message = "Database error"
