"""
Capacity Planner - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Usage:
    from app.exceptions import NotFoundError, BatchOperationError

    # In a service
    raise NotFoundError("Production job", "PO100")

    # From the merge engine
    raise BatchOperationError(
        "Insert batch failed", phase="add", batch_index=2, batch_count=4, keys=[...]
    )
"""
from typing import Any, Dict, List, Optional


class CapacityPlannerException(Exception):
    """
    Base exception for all Capacity Planner errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "CAPACITY_PLANNER_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(CapacityPlannerException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


# ===================
# 401 Unauthorized Errors
# ===================


class AuthenticationError(CapacityPlannerException):
    """Raised when the caller's identity is missing."""

    error_code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(ValidationError):
    """Raised when a resource is not found; a validation failure with its own status."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(CapacityPlannerException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class DepartmentBusyError(ConflictError):
    """Raised when another schedule write is already running for a department."""

    error_code = "DEPARTMENT_BUSY"

    def __init__(
        self,
        department: str,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["department"] = department
        super().__init__(
            f"A schedule update for department '{department}' is already in progress",
            details=details,
        )


# ===================
# 500 Internal Server Errors
# ===================


class BatchOperationError(CapacityPlannerException):
    """
    Raised when a remove or add batch fails against the job store.

    Batches before the failing one stay committed. The details carry the
    phase, the failing batch index, the keys in that batch and the partial
    merge counts so the department can be reconciled by hand.
    """

    error_code = "BATCH_OPERATION_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "Batch operation failed",
        *,
        phase: str,
        batch_index: int,
        batch_count: int,
        keys: Optional[List[str]] = None,
        partial_result: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["phase"] = phase
        details["batch_index"] = batch_index
        details["batch_count"] = batch_count
        details["keys"] = list(keys or [])
        if partial_result is not None:
            details["partial_result"] = partial_result
        self.phase = phase
        self.batch_index = batch_index
        self.batch_count = batch_count
        self.keys = list(keys or [])
        self.partial_result = partial_result
        super().__init__(message, details=details)


class PartialMergeError(BatchOperationError):
    """
    Raised when the add phase fails after the remove phase already deleted rows.

    The department may now hold fewer jobs than either the old or the new
    schedule.
    """

    error_code = "PARTIAL_MERGE"


class StoreAccessError(CapacityPlannerException):
    """Raised when the job store cannot be read or written."""

    error_code = "STORE_ACCESS_ERROR"
    status_code = 503

    def __init__(
        self,
        message: str = "Job store unavailable",
        *,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details)
