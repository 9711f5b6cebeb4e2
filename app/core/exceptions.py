"""
Custom Exceptions

This module defines the error taxonomy of the click attribution pipeline.

Every exception that may reach a client carries a stable ``error`` title, a
``message`` and the HTTP status it maps to, so the API layer can render it
without inspecting the exception type.

Two exceptions never reach a client as-is:
- RecordingFailure: translated to InternalError on the record path and
  suppressed entirely on the redirect path
- DatabaseError: raised by the SQL stores, wrapped by the recorder
"""

from typing import Any, Optional


class AttributionServiceError(Exception):
    """Base exception for the attribution service."""

    status_code: int = 500
    error: str = "Internal server error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class InvalidInputError(AttributionServiceError):
    """Raised when a link id or request field is malformed. Never retried."""

    status_code = 400
    error = "Validation failed"
    message = "Request body failed validation."

    def __init__(
        self,
        message: Optional[str] = None,
        error: Optional[str] = None,
        details: Optional[list[dict[str, Any]]] = None,
    ):
        if error is not None:
            self.error = error
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidLinkIdError(InvalidInputError):
    """Raised when a link id is not a UUID."""

    error = "Invalid link ID"
    message = "Link ID must be a valid UUID."

    def __init__(self, link_id: Any):
        self.link_id = link_id
        super().__init__()


class LinkNotFoundError(AttributionServiceError):
    """Raised when no link with the given id exists."""

    status_code = 404
    error = "Link not found"
    message = "The specified affiliate link does not exist."

    def __init__(self, link_id: Any):
        self.link_id = link_id
        super().__init__()


class LinkGoneError(AttributionServiceError):
    """Raised when a link exists but its status does not allow redirects."""

    status_code = 410
    error = "Link unavailable"
    message = "This affiliate link is no longer available."

    def __init__(self, link_id: Any):
        self.link_id = link_id
        super().__init__()


class RateLimitedError(AttributionServiceError):
    """Raised when a client origin exhausted its window. Retry after the window."""

    status_code = 429
    error = "Too many requests"
    message = "Rate limit exceeded. Please try again later."

    def __init__(self, key: str, retry_after: int):
        self.key = key
        self.retry_after = retry_after
        super().__init__()


class InternalError(AttributionServiceError):
    """Generic server failure. No partial-success information is exposed."""


class RecordingFailure(AttributionServiceError):
    """Raised by the attribution recorder when the click event was not persisted."""

    def __init__(self, link_id: Any, original_error: Optional[Exception] = None):
        self.link_id = link_id
        self.original_error = original_error
        super().__init__(f"Failed to record click event for link {link_id}")


class DatabaseError(AttributionServiceError):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
