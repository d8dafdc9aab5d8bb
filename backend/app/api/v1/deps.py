"""
API Dependencies

Caller identity and common query parameter dependencies.

Authentication is handled upstream; the gateway forwards the caller's id in
the X-User-Id header and endpoints that write audit fields require it.
"""
from typing import Optional

from fastapi import Header, Query

from app.exceptions import AuthenticationError
from app.schemas.common import PaginationParams


async def get_actor_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Dependency to get the acting user's id for audit fields.

    Returns:
        The stripped user id

    Raises:
        AuthenticationError (401) if the header is missing or blank
    """
    if x_user_id is None or not x_user_id.strip():
        raise AuthenticationError("X-User-Id header is required for this operation")
    return x_user_id.strip()


def get_pagination_params(
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of records to skip (for pagination)"
    ),
    limit: int = Query(
        default=100,
        ge=1,
        le=1000,
        description="Maximum number of records to return (1-1000)"
    )
) -> PaginationParams:
    """
    Dependency for standardized pagination parameters.

    Example:
        @router.get("/{department}/jobs")
        async def list_jobs(
            department: Department,
            pagination: PaginationParams = Depends(get_pagination_params),
            db: Session = Depends(get_db)
        ):
            ...
    """
    return PaginationParams(offset=offset, limit=limit)
