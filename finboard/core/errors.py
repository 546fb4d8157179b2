import logging
from typing import Any, Callable, Optional, TypeVar

from fastapi import status

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FinboardError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(FinboardError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ValidationFailed(FinboardError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class PermissionDenied(FinboardError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class ConflictError(FinboardError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class BackendUnavailable(FinboardError):
    """A storage SDK or driver call failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "BACKEND_ERROR"


def with_error_handling(fn: Callable[[], T], fallback: T, error_message: str) -> T:
    """Run ``fn`` and return ``fallback`` if it raises.

    Dashboard widgets use this so one failing query renders as an empty
    widget instead of failing the whole page.
    """
    try:
        return fn()
    except Exception:
        logger.exception(error_message)
        return fallback
