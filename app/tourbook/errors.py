from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """
    Base for errors that map straight onto a JSON envelope response.
    `error` is the short label, `message` the human-readable detail.
    """

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str | None = None, *, error: str | None = None, details: list[Any] | None = None):
        super().__init__(message or self.error)
        self.message = message
        if error:
            self.error = error
        self.details = details


class ValidationError(ApiError):
    status_code = 400
    error = "Validation failed"

    def __init__(self, errors: list[dict[str, str]], message: str | None = None):
        first = errors[0]["message"] if errors else None
        super().__init__(message or first or "Invalid input data", details=errors)
        self.errors = errors


class BadRequest(ApiError):
    status_code = 400
    error = "Bad request"


class Unauthorized(ApiError):
    status_code = 401
    error = "Authentication required"


class Forbidden(ApiError):
    status_code = 403
    error = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    error = "Not found"


class TooManyRequests(ApiError):
    status_code = 429
    error = "Too many requests"
