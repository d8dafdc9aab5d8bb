"""
Common API Response Schemas

Provides standardized error responses and pagination models for consistent API behavior.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400/422)
        - AUTHENTICATION_ERROR: Caller identity missing (401)
        - NOT_FOUND: Resource not found (404)
        - CONFLICT: Resource conflict (409)
        - DEPARTMENT_BUSY: Another schedule update is running for the department (409)
        - BATCH_OPERATION_ERROR: A merge batch failed; earlier batches are committed (500)
        - PARTIAL_MERGE: Adds failed after removals were committed (500)
        - DATABASE_ERROR: Database operation failed (500)
        - STORE_ACCESS_ERROR: Job store unavailable (503)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "NOT_FOUND",
            "message": "Production job PO100 not found",
            "details": {
                "resource": "Production job",
                "resource_id": "PO100"
            },
            "timestamp": "2025-12-23T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context for debugging"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


# ============================================================================
# Pagination Models
# ============================================================================

class PaginationParams(BaseModel):
    """
    Standardized pagination parameters for list endpoints.

    Uses offset-based pagination which is simple and predictable.
    """
    offset: int = Field(
        default=0,
        ge=0,
        description="Number of records to skip (for pagination)"
    )
    limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum number of records to return (1-1000)"
    )


class PaginationMeta(BaseModel):
    """Pagination metadata included in list responses."""
    total: int = Field(..., description="Total number of records matching the query")
    offset: int = Field(..., description="Current offset (number of records skipped)")
    limit: int = Field(..., description="Maximum records per page")
    returned: int = Field(..., description="Number of records in this response")


# ============================================================================
# Generic Response Wrappers
# ============================================================================

T = TypeVar('T')


class ListResponse(BaseModel, Generic[T]):
    """
    Standardized list response wrapper with pagination.

    The generic type T represents the item type in the list.
    """
    items: List[T] = Field(..., description="List of items")
    pagination: PaginationMeta = Field(..., description="Pagination metadata")


class MessageResponse(BaseModel):
    """
    Simple message response for operations that don't return data.
    """
    message: str = Field(..., description="Operation result message")
