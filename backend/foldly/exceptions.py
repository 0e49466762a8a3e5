"""Custom exception hierarchy for Foldly."""

from enum import Enum
from typing import Optional, Dict, Any, List


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"

    # Ownership / access errors
    OWNERSHIP_MISMATCH = "OWNERSHIP_MISMATCH"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Storage errors
    STORAGE_ERROR = "STORAGE_ERROR"

    # Tree errors
    CYCLE_DETECTED = "CYCLE_DETECTED"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"

    # Copy errors
    COPY_FAILED = "COPY_FAILED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FoldlyException(Exception):
    """
    Base exception for all Foldly errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(FoldlyException):
    """An id references something that does not exist or is not visible to the caller."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.RECORD_NOT_FOUND,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, status_code=404, details=details)


class NodeNotFoundError(NotFoundError):
    """Tree node not present in a TreeStore."""

    def __init__(self, node_id: str):
        super().__init__(
            f"Node not found: {node_id}",
            ErrorCode.NODE_NOT_FOUND,
            details={"node_id": node_id}
        )
        self.node_id = node_id


class RecordNotFoundError(NotFoundError):
    """Database record not found."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(
            f"{kind.capitalize()} not found: {record_id}",
            ErrorCode.RECORD_NOT_FOUND,
            details={"kind": kind, "id": record_id}
        )
        self.kind = kind
        self.record_id = record_id


class OwnershipError(FoldlyException):
    """Item does not belong to the asserted link, workspace or user."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            ErrorCode.OWNERSHIP_MISMATCH,
            status_code=403,
            details=details
        )


class StorageError(FoldlyException):
    """Blob copy or delete failed in the object storage backend."""

    def __init__(self, message: str, key: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message,
            ErrorCode.STORAGE_ERROR,
            status_code=502,
            details=details
        )


class InvariantViolation(FoldlyException):
    """The tree entered a state that breaks its structural invariants.

    Programming-error level: never raised for bad user input.
    """

    def __init__(self, problems: List[str]):
        super().__init__(
            "Tree invariant violated: " + "; ".join(problems),
            ErrorCode.INVARIANT_VIOLATION,
            status_code=500,
            details={"problems": problems}
        )
        self.problems = problems


class CycleError(FoldlyException):
    """A move would make a folder its own descendant."""

    def __init__(self, node_id: str, target_id: Optional[str]):
        super().__init__(
            f"Cannot move {node_id} into its own descendant {target_id}",
            ErrorCode.CYCLE_DETECTED,
            status_code=400,
            details={"node_id": node_id, "target_id": target_id}
        )


class ValidationError(FoldlyException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class CopyFailedError(FoldlyException):
    """No item of a copy batch could be copied."""

    def __init__(self, failed_items: List[Dict[str, Any]]):
        super().__init__(
            "No items could be copied. Please check the items and try again.",
            ErrorCode.COPY_FAILED,
            status_code=422,
            details={"failed_items": failed_items}
        )
        self.failed_items = failed_items


class AuthenticationError(FoldlyException):
    """Request carries no user identity."""

    def __init__(self, message: str = "Missing authenticated user"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )
