"""Error taxonomy for identity resolution.

Every error carries a category and a context dict naming the operation and
the identifiers involved. The HTTP layer maps categories to status codes;
nothing below it retries.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    INTERNAL = "internal"
    CANCELLED = "cancelled"


class ResolutionError(Exception):
    """Base exception for all identity resolution errors."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_message": self.message,
            "category": self.category.value,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class NotFoundError(ResolutionError):
    """A program, group, mention or stakeholder does not exist."""

    category = ErrorCategory.NOT_FOUND


class ValidationError(ResolutionError):
    """Caller supplied an invalid value."""

    category = ErrorCategory.VALIDATION


class ConflictError(ResolutionError):
    """The target is in a state that does not allow the operation."""

    category = ErrorCategory.CONFLICT


class StorageError(ResolutionError):
    """Persistence failure. The surrounding transaction has been rolled back."""

    category = ErrorCategory.INTERNAL


class OperationCancelled(ResolutionError):
    """The caller's cancellation signal was set before the operation finished."""

    category = ErrorCategory.CANCELLED
