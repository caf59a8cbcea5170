"""Application error hierarchy.

Each error carries the HTTP status and machine-readable code rendered into
the ``{success: false, error: {...}}`` envelope by the handlers in main.py.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base exception for errors reported to API clients."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.suggestion = suggestion

    def to_error(self) -> Dict[str, Any]:
        return error_body(self.code, self.message, self.details, self.suggestion)


class ValidationFailedError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


def error_body(
    code: str,
    message: str,
    details: Optional[Any] = None,
    suggestion: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the ``error`` object of a failure envelope."""
    body: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    if suggestion is not None:
        body["suggestion"] = suggestion
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return body
