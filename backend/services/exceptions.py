"""Service-layer exceptions.

Services raise these; the app-level exception handlers in ``main.py`` turn
each into a JSON ``{"error": ...}`` body with the carried HTTP status.
"""


class ServiceError(Exception):
    """Base class for errors raised by the services layer."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        super().__init__(message)


class Unauthorized(ServiceError):
    """Caller is not authenticated (missing user, bad cron secret)."""

    status_code = 401


class ValidationError(ServiceError):
    status_code = 400


class NotFoundOrForbidden(ServiceError):
    """The resource does not exist or belongs to another user.

    Both cases share one error so callers cannot probe for other users'
    resources.
    """

    status_code = 404


class PersistenceError(ServiceError):
    status_code = 500


class ConnectionNotReady(ServiceError):
    """The requisition exists but the user has not (or no longer) authorized it."""

    status_code = 409

    def __init__(self, message: str, status: str):
        self.status = status
        super().__init__(message)
