"""
Error taxonomy shared by the store and the HTTP layer.

Every failure the service reports belongs to one of three kinds. The kind
decides the HTTP status; the detail is the human-readable message placed in
the response envelope.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    PERSISTENCE_FAILURE = "persistence_failure"


_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


class TaskError(Exception):
    """Base class for all errors raised by the task service.

    Attributes:
        kind: Which member of the closed taxonomy this error belongs to
        detail: Human-readable message
        original_error: Optional exception that caused this error
    """

    kind: ErrorKind = ErrorKind.PERSISTENCE_FAILURE

    def __init__(self, detail: str, *, original_error: Optional[BaseException] = None):
        super().__init__(detail)
        self.detail = detail
        self.original_error = original_error

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict:
        return {"success": False, "error": self.detail}


class InvalidInputError(TaskError):
    """Raised when a request or a store argument fails validation."""

    kind = ErrorKind.INVALID_INPUT


class NotFoundError(TaskError):
    """Raised when a well-formed id matches no task."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, task_id: int, *, detail: str = "task not found"):
        super().__init__(detail)
        self.task_id = task_id


class PersistenceError(TaskError):
    """Raised when the storage backend fails."""

    kind = ErrorKind.PERSISTENCE_FAILURE
