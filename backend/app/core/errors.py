"""
Gateway error hierarchy.

Every error the service raises on purpose derives from GatewayError and
carries the envelope ``error`` kind plus the HTTP status it maps to. The
exception handlers in ``app.main`` turn them into
``{error, message, details, timestamp}`` responses.
"""

from enum import Enum
from typing import Any


class GatewayError(Exception):
    """Base for all domain errors; ``status_code`` is the HTTP mapping."""

    error: str = "InternalError"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        details: Any = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationFailure(str, Enum):
    """Why the query validator rejected a statement."""

    EMPTY_QUERY = "EmptyQuery"
    DISALLOWED_COMMAND = "DisallowedCommand"
    FORBIDDEN_KEYWORD = "ForbiddenKeyword"


class QueryValidationError(GatewayError):
    error = "ValidationError"
    status_code = 400

    def __init__(self, kind: ValidationFailure, message: str) -> None:
        super().__init__(message, details={"kind": kind.value})
        self.kind = kind


class ParameterBindingError(GatewayError):
    """A placeholder in the SQL has no value in the parameter map."""

    error = "ParameterBindingError"
    status_code = 400


class NotFoundError(GatewayError):
    error = "NotFound"
    status_code = 404


class TemplateNotFoundError(NotFoundError):
    error = "TemplateNotFound"


class ExecutionError(GatewayError):
    """The backend (driver) failed while executing a statement."""

    error = "ExecutionError"
    status_code = 500


class ConflictError(GatewayError):
    """Optimistic version check failed on update."""

    error = "Conflict"
    status_code = 409


class PersistenceError(GatewayError):
    """The template store rejected a write (FK restrict, unique name)."""

    error = "PersistenceError"
    status_code = 409


class CacheSyncError(GatewayError):
    error = "CacheSyncError"
    status_code = 500


class UnauthorizedError(GatewayError):
    error = "Unauthorized"
    status_code = 401
