"""Route handlers for the AI gateway."""

from fastapi import APIRouter

from aigateway.routes import admin, ai, blog_writer, discovery, health

# Create main router
router = APIRouter()

router.include_router(health.router, tags=["Health"])
router.include_router(discovery.router, prefix="/api/v1", tags=["Discovery"])
router.include_router(ai.router, prefix="/api/v1/ai", tags=["AI"])
router.include_router(blog_writer.router, prefix="/api/v1/blog-writer", tags=["Blog Writer"])
router.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
