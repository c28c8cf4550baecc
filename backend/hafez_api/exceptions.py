"""
Hafez Quraan Backend — Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for the three failure kinds the API reports.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the uniform `{"success": false, "error": ...}` envelope.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    HafezError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UpstreamServiceError     → 500 Internal Server Error (mail provider)
    └── StorageError             → 500 Internal Server Error (database)

Not an error:
    Loading progress for an unknown email returns the empty default state.
    There is deliberately no NotFoundError.
"""

from typing import Any, Dict, Optional


class HafezError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (returned in the `error` field)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(HafezError):
    """
    Raised when a required field is missing or malformed.

    When:    Missing email/otp/activityType, email without '@' or '.',
             duplicate verse identifiers or page numbers in one save payload.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UpstreamServiceError(HafezError):
    """
    Raised when the transactional-email provider rejects or fails a send.

    `authorization_failed` distinguishes a rejected API key (401/403) from
    any other failure so the handler can log it at the right severity and
    the message can tell the operator what to fix.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Failed to send email",
        authorization_failed: bool = False,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["authorization_failed"] = authorization_failed
        if status_code is not None:
            ctx["provider_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.authorization_failed = authorization_failed
        self.status_code = status_code


class StorageError(HafezError):
    """
    Raised when a database operation fails.

    The storage layer's own message is passed through to the client, so
    callers wrap driver exceptions with `StorageError(message=str(exc))`.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

    @classmethod
    def from_exception(
        cls, exc: Exception, context: Optional[Dict[str, Any]] = None
    ) -> "StorageError":
        """
        Wrap a driver/SQLAlchemy exception, keeping the driver's message.

        SQLAlchemy's DBAPIError stringifies with the SQL statement and a
        docs link appended; `orig` holds the driver's own message.
        """
        orig = getattr(exc, "orig", None)
        ctx = context or {}
        ctx["error_type"] = type(exc).__name__
        return cls(message=str(orig if orig is not None else exc), context=ctx)
