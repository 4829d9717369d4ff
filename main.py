"""AI Gateway - entry point for AI content generation traffic."""

import os
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aigateway.catalog import BLOG_WRITER_SERVICE_ID, default_providers, default_services
from aigateway.clients import BlogWriterClient, ServiceClient
from aigateway.config import RATE_LIMIT_PROFILES, settings
from aigateway.middleware import (
    AuthMiddleware,
    CorrelationIdMiddleware,
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from aigateway.models.response import ErrorCode
from aigateway.routes import router
from aigateway.services import (
    ApiManager,
    ErrorService,
    HealthMonitor,
    IntelligentRouter,
    JWTService,
    RateLimitService,
    ServiceRegistry,
)
from aigateway.utils import init_utils, logger

CONFIG_DIR = Path(os.environ.get("CONFIG_DIR", "config"))


def build_services(app: FastAPI, transport=None):
    """Create every service and store it on ``app.state``.

    Args:
        app: Application whose state receives the services
        transport: Optional httpx transport shared by all outbound clients
    """
    provider_client = ServiceClient(timeout=settings.REQUEST_TIMEOUT, transport=transport)
    probe_client = ServiceClient(timeout=settings.HEALTH_CHECK_TIMEOUT, transport=transport)
    blog_writer_client = BlogWriterClient(
        base_url=settings.BLOG_WRITER_API_URL,
        api_key=settings.BLOG_WRITER_API_KEY,
        timeout=settings.BLOG_WRITER_TIMEOUT,
        retry_attempts=settings.BLOG_WRITER_RETRY_ATTEMPTS,
        transport=transport,
    )

    registry = ServiceRegistry()
    for service in default_services(settings):
        registry.register(service)

    health_monitor = HealthMonitor(
        registry,
        service_client=probe_client,
        checkers={BLOG_WRITER_SERVICE_ID: blog_writer_client.health_check},
        check_timeout=settings.HEALTH_CHECK_TIMEOUT,
    )

    app.state.jwt_service = JWTService()
    app.state.rate_limit_service = RateLimitService(
        RATE_LIMIT_PROFILES, cleanup_interval=settings.RATE_LIMIT_CLEANUP_INTERVAL
    )
    app.state.service_registry = registry
    app.state.health_monitor = health_monitor
    app.state.intelligent_router = IntelligentRouter(registry, service_client=provider_client)
    app.state.api_manager = ApiManager(
        service_client=provider_client,
        providers=default_providers(settings),
        health_check_interval=settings.HEALTH_CHECK_INTERVAL,
    )
    app.state.blog_writer_client = blog_writer_client
    app.state.http_clients = [provider_client, probe_client, blog_writer_client]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the services on startup; stop tasks and close clients on shutdown."""
    init_utils(CONFIG_DIR)
    logger.info(f"Starting {settings.SERVICE_NAME} v{settings.SERVICE_VERSION}")
    logger.info(
        "Environment: %s | Server: %s:%s",
        settings.ENVIRONMENT,
        settings.HOST,
        settings.PORT,
    )

    build_services(app)

    app.state.rate_limit_service.start()
    await app.state.api_manager.start()
    if settings.HEALTH_MONITOR_AUTOSTART or settings.ENVIRONMENT.lower() == "production":
        await app.state.health_monitor.start(settings.HEALTH_CHECK_INTERVAL)
        logger.info("Health monitor started")

    logger.info(f"{settings.SERVICE_NAME} startup complete")

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME}")
    await app.state.health_monitor.stop()
    await app.state.api_manager.stop()
    await app.state.rate_limit_service.stop()
    for client in app.state.http_clients:
        await client.close()
    logger.info(f"{settings.SERVICE_NAME} shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.OPENAPI_TITLE,
    version=settings.SERVICE_VERSION,
    description=settings.OPENAPI_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    correlation_id = getattr(request.state, "correlation_id", None)
    error_code = ErrorService.map_http_status_to_error_code(exc.status_code)
    ErrorService.log_error(
        error_code=error_code,
        message=str(exc.detail),
        correlation_id=correlation_id,
        user_id=getattr(request.state, "user_id", None),
        path=request.url.path,
    )
    error_response = ErrorService.create_error_response(
        code=error_code, message=str(exc.detail), correlation_id=correlation_id
    )
    return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err["loc"] if part != "body") for err in exc.errors()]
    error_response = ErrorService.create_error_response(
        code=ErrorCode.INVALID_REQUEST,
        message=f"Invalid or missing fields: {', '.join(f for f in fields if f)}",
        details={"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]},
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    return JSONResponse(status_code=400, content=error_response.model_dump(mode="json"))


# Custom middleware: the last one added runs first.
# Request flow: CORS -> correlation id -> logging -> rate limit -> auth -> security headers -> errors
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuthMiddleware)
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

if settings.CORS_ENABLED:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint returning service metadata."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT.lower() == "development",
    )
