# clinic_core/common/errors.py
from __future__ import annotations

from typing import Any


class CoreError(Exception):
    """
    Base for business-rule failures raised by services.

    Every error carries a stable `code` (drives UI messaging and tests) and the
    HTTP status the API layer should answer with.
    """
    status_code = 400
    default_code = "error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, code: str | None = None, details: Any = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ValidationFailed(CoreError):
    status_code = 400
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid input."


class NotFoundError(CoreError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Not found."


class BusinessConflict(CoreError):
    """
    Business-rule rejection (409). Retrying with the same input fails again.
    """
    status_code = 409
    default_code = "CONFLICT"
    default_message = "Conflict."


class IllegalTransition(CoreError):
    status_code = 409
    default_code = "INVALID_STATUS_TRANSITION"
    default_message = "Status transition is not allowed."


class TransientCommitError(CoreError):
    """
    Lost a race on a serialized resource after exhausting retries.
    Safe for the caller to retry.
    """
    status_code = 503
    default_code = "CONCURRENT_UPDATE"
    default_message = "The record was changed concurrently. Please retry."
