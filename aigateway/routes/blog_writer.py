"""Blog writer endpoints, routed through the ApiManager."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from aigateway.clients.blog_writer_client import BlogWriterError
from aigateway.models.blog import (
    BlogWriterOptions,
    BlogWriterRequest,
    BlogWriterResponse,
    ContentAnalysisRequest,
    KeywordAnalysisRequest,
)
from aigateway.models.request import ApiRequest
from aigateway.models.response import ManagementResponse, utc_timestamp
from aigateway.routes.deps import get_current_user
from aigateway.services.error_service import ErrorService
from aigateway.utils import generate_id

router = APIRouter()

COMPONENT = "blog-writer-route"

GENERATION_OPTIONS = BlogWriterOptions(
    tones=["professional", "casual", "friendly", "authoritative", "conversational", "technical"],
    lengths=["short", "medium", "long", "extended"],
    languages=["en", "es", "fr", "de", "it", "pt", "ru", "zh", "ja", "ko"],
    styles=["how-to", "listicle", "news", "opinion", "tutorial", "review", "comparison"],
    features=[
        "seo-optimization",
        "outline-generation",
        "keyword-integration",
        "tone-adaptation",
        "content-analysis",
        "keyword-research",
    ],
)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ManagementResponse.fail(message).model_dump(mode="json"),
    )


async def _route(
    request: Request,
    user_id: str,
    endpoint: str,
    body: Any,
    provider_id: Optional[str],
    assignment_id: Optional[str],
) -> ManagementResponse:
    api_request = ApiRequest(
        id=generate_id("req"),
        provider_id=provider_id,
        endpoint=endpoint,
        method="POST",
        body=body,
        user_id=user_id,
        api_key_id=getattr(request.state, "api_key_id", None),
    )
    return await request.app.state.api_manager.route_request(api_request, assignment_id)


def _upstream_failure(result: ManagementResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=result.model_dump(mode="json"),
    )


@router.post("/generate")
async def generate(
    body: BlogWriterRequest,
    request: Request,
    provider_id: Optional[str] = None,
    assignment_id: Optional[str] = None,
    user_id: str = Depends(get_current_user),
):
    """Generate a blog post and normalize the provider's answer."""
    result = await _route(
        request,
        user_id,
        "/api/v1/generate",
        body.model_dump(exclude_none=True),
        provider_id,
        assignment_id,
    )
    if not result.success:
        return _upstream_failure(result)

    post = BlogWriterResponse.from_upstream(result.data.body, body)
    ErrorService.log_operation(
        COMPONENT,
        "generate",
        additional_data={
            "user_id": user_id,
            "topic": body.topic,
            "word_count": post.word_count,
            "provider_id": result.data.provider_id,
        },
    )
    return ManagementResponse.ok(post)


@router.get("/generate")
async def generation_options(user_id: str = Depends(get_current_user)):
    """Tones, lengths, languages, styles and features accepted by /generate."""
    return ManagementResponse.ok(GENERATION_OPTIONS)


@router.post("/analyze")
async def analyze(
    body: ContentAnalysisRequest,
    request: Request,
    provider_id: Optional[str] = None,
    assignment_id: Optional[str] = None,
    user_id: str = Depends(get_current_user),
):
    result = await _route(
        request, user_id, "/api/v1/analyze", body.model_dump(), provider_id, assignment_id
    )
    if not result.success:
        return _upstream_failure(result)
    return ManagementResponse.ok(result.data.body)


@router.post("/keywords")
async def keywords(
    body: KeywordAnalysisRequest,
    request: Request,
    provider_id: Optional[str] = None,
    assignment_id: Optional[str] = None,
    user_id: str = Depends(get_current_user),
):
    if not body.keywords and not body.content:
        return _bad_request("Either keywords or content is required")

    result = await _route(
        request,
        user_id,
        "/api/v1/keywords/analyze",
        body.model_dump(exclude_none=True),
        provider_id,
        assignment_id,
    )
    if not result.success:
        return _upstream_failure(result)
    return ManagementResponse.ok(result.data.body)


@router.get("/health")
async def blog_writer_health(request: Request):
    """Probe the blog writer API directly; 503 when it does not answer."""
    client = request.app.state.blog_writer_client
    try:
        health_status = await client.health_check()
    except BlogWriterError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=ManagementResponse(
                success=False,
                error=str(e),
                data={
                    "service": "blog-writer-api",
                    "status": "unhealthy",
                    "timestamp": utc_timestamp(),
                    "error": str(e),
                },
            ).model_dump(mode="json"),
        )

    details = health_status if isinstance(health_status, dict) else {}
    return ManagementResponse.ok(
        {
            "service": "blog-writer-api",
            "status": "healthy",
            "timestamp": utc_timestamp(),
            **details,
        }
    )
