"""
errors.py - Domain error taxonomy for the collector API.

Business logic (store.py, routes) raises these; main.py converts every one
into the uniform {success: false, error: <message>} body with its status code.
No HTTPException is raised below the route layer.
"""


class AnalyticsError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AnalyticsError):
    """A required field is missing or empty."""

    status_code = 400


class UnauthorizedError(AnalyticsError):
    status_code = 401


class NotFoundError(AnalyticsError):
    """A referenced session, project or user does not exist."""

    status_code = 404


class ConflictError(AnalyticsError):
    status_code = 409


class InternalError(AnalyticsError):
    """Persistence failure or malformed batch. Message is safe to show clients."""

    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


__all__ = [
    "AnalyticsError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
