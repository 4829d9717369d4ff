"""Provider-agnostic AI endpoint backed by the intelligent router."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from aigateway.models.response import ErrorCode
from aigateway.models.routing import UnifiedRequest
from aigateway.routes.deps import get_current_user

router = APIRouter()

FAILURE_STATUS = {
    ErrorCode.NO_COMPATIBLE_SERVICES.value: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.ROUTING_ERROR.value: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post("/process")
async def process(
    body: UnifiedRequest, request: Request, user_id: str = Depends(get_current_user)
):
    """Route a prompt to the best matching AI service.

    The caller's identity always overrides ``context.user_id``.
    """
    body.context.user_id = user_id
    result = await request.app.state.intelligent_router.route_request(body)

    code = status.HTTP_200_OK
    if not result.success and result.error:
        code = FAILURE_STATUS.get(result.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))
