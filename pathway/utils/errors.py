"""
Error taxonomy for the progress engine.

Pure evaluators never raise for "not yet satisfied"; these are reserved for
malformed input, ownership violations and I/O failures. `status_code` is the
HTTP status the app-level exception handler responds with.
"""

from __future__ import annotations

from typing import Any, Optional


class ProgressError(Exception):
    status_code: int = 500
    code: str = "progress_error"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body.update(self.details)
        return body


class NotFoundError(ProgressError):
    status_code = 404
    code = "not_found"


class UnauthorizedError(ProgressError):
    status_code = 403
    code = "unauthorized"


class ValidationError(ProgressError):
    status_code = 400
    code = "validation_error"


class QuizLockedError(ProgressError):
    """Quiz prerequisites are unmet; `details["missing"]` lists what is left."""

    status_code = 403
    code = "quiz_locked"


class AttemptsExhaustedError(ProgressError):
    status_code = 409
    code = "attempts_exhausted"


class TransientStoreError(ProgressError):
    """Persistence call failed (network/availability). Safe to retry."""

    status_code = 503
    code = "store_unavailable"


class VersionConflict(TransientStoreError):
    """Compare-and-set lost against a concurrent writer."""

    code = "version_conflict"

    def __init__(self, key: str, expected: int, actual: int):
        super().__init__(
            f"Version conflict on {key}: expected {expected}, found {actual}",
            details={"key": key},
        )
        self.key = key
        self.expected = expected
        self.actual = actual
