"""Error taxonomy shared by the HTTP routes and the dashboard websocket.

Services raise these; main.py installs one exception handler that turns
them into `{"error": message}` responses with the matching status code.
"""


class TaskManagerError(Exception):
    """Base class. `status_code` is the HTTP status the error maps to."""

    status_code = 500
    default_message = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthenticated(TaskManagerError):
    """Missing, invalid or expired token, or a token whose user is gone."""

    status_code = 401
    default_message = "unauthenticated"


class NoCredential(Unauthenticated):
    """No token was supplied at all."""

    default_message = "authentication required"


class Forbidden(TaskManagerError):
    status_code = 403
    default_message = "user is not owner of this item"


class NotFound(TaskManagerError):
    status_code = 404
    default_message = "not found"


class ValidationError(TaskManagerError):
    status_code = 400
    default_message = "invalid input"


class InternalError(TaskManagerError):
    """A collaborator (database, hashing) failed. Never shown verbatim."""

    status_code = 500
    default_message = "internal server error"
