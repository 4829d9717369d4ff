"""Shared route dependencies and envelope helpers."""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from aigateway.config import settings
from aigateway.models.response import ManagementResponse


async def get_current_user(request: Request) -> str:
    """Caller id set by the auth middleware."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )
    return user_id


async def verify_admin_role(request: Request) -> str:
    """Require one of the configured admin roles."""
    user_id = await get_current_user(request)
    roles = getattr(request.state, "roles", None) or []
    if not any(role in settings.ADMIN_ROLES for role in roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required"
        )
    return user_id


def to_response(
    result: ManagementResponse,
    success_status: int = status.HTTP_200_OK,
    failure_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
) -> JSONResponse:
    """Render a manager envelope; "... not found" failures become 404."""
    if result.success:
        code = success_status
    elif result.error and "not found" in result.error.lower():
        code = status.HTTP_404_NOT_FOUND
    else:
        code = failure_status
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))
