"""Built-in providers and router services, assembled from settings."""

from typing import List

from aigateway.config import Settings
from aigateway.models.provider import (
    ApiCapabilities,
    ApiCredentials,
    ApiEnvironment,
    ApiMetadata,
    ApiProvider,
    ApiProviderType,
    QualityMetrics,
)
from aigateway.models.routing import (
    AuthConfig,
    CostStructure,
    ServiceCapabilities,
    ServiceDefinition,
    ServiceEndpoint,
    ServiceLimits,
    ServiceMetadata,
    ServiceType,
)

BLOG_WRITER_SERVICE_ID = "blog-writer-api"

LANGUAGES = ["en", "es", "fr", "de", "it", "pt", "ru", "zh", "ja", "ko"]
BLOG_WRITER_FEATURES = [
    "seo-optimization",
    "outline-generation",
    "keyword-integration",
    "tone-adaptation",
]
BLOG_WRITER_QUALITY = QualityMetrics(
    relevance=0.9, coherence=0.85, creativity=0.8, accuracy=0.9, overall=0.86
)
BLOG_WRITER_DESCRIPTION = (
    "Specialized AI service for generating high-quality blog posts with SEO optimization"
)

# provider id, name, environment id, environment name, url setting, key setting
BLOG_WRITER_DEPLOYMENTS = [
    ("blog-writer-dev", "Blog Writer API - Development", "blog-writer-dev-eu", "Europe West 1",
     "BLOG_WRITER_DEV_URL", "BLOG_WRITER_DEV_API_KEY"),
    ("blog-writer-staging", "Blog Writer API - Staging", "blog-writer-staging-us", "US East 1",
     "BLOG_WRITER_STAGING_URL", "BLOG_WRITER_STAGING_API_KEY"),
    ("blog-writer-prod", "Blog Writer API - Production", "blog-writer-prod-us", "US Central 1",
     "BLOG_WRITER_PROD_URL", "BLOG_WRITER_PROD_API_KEY"),
]


def default_providers(settings: Settings) -> List[ApiProvider]:
    """The three blog writer deployments. Every environment starts unhealthy."""
    providers = []
    for provider_id, name, env_id, env_name, url_field, key_field in BLOG_WRITER_DEPLOYMENTS:
        base_url = getattr(settings, url_field)
        providers.append(
            ApiProvider(
                id=provider_id,
                name=name,
                type=ApiProviderType.BLOG_WRITING,
                environments=[
                    ApiEnvironment(
                        id=env_id,
                        name=env_name,
                        base_url=base_url,
                        timeout_ms=settings.BLOG_WRITER_TIMEOUT * 1000,
                        retry_attempts=settings.BLOG_WRITER_RETRY_ATTEMPTS,
                    )
                ],
                credentials=ApiCredentials(api_key=getattr(settings, key_field), encrypted=True),
                capabilities=ApiCapabilities(
                    supported_endpoints=[
                        "/api/v1/generate",
                        "/api/v1/generate/v2",
                        "/api/v1/analyze",
                        "/api/v1/seo/optimize",
                        "/api/v1/keywords/analyze",
                        "/api/v1/keywords/extract",
                        "/api/v1/keywords/suggest",
                        "/health",
                        "/ready",
                    ],
                    supported_formats=["text", "markdown", "html", "json"],
                    max_tokens=4000,
                    supported_languages=LANGUAGES,
                    special_features=BLOG_WRITER_FEATURES + ["content-analysis", "keyword-research"],
                    quality=BLOG_WRITER_QUALITY,
                ),
                metadata=ApiMetadata(
                    provider="AI Blog Writer Service",
                    version="1.0.0",
                    description=BLOG_WRITER_DESCRIPTION,
                    documentation=f"{base_url}/docs",
                    support_contact="support@example.com",
                    tags=["blog-writing", "seo", "content-generation"],
                ),
            )
        )
    return providers


def default_services(settings: Settings) -> List[ServiceDefinition]:
    """Services registered with the intelligent router at start-up."""
    return [
        ServiceDefinition(
            id=BLOG_WRITER_SERVICE_ID,
            name="AI Blog Writer API",
            type=ServiceType.BLOG_WRITING,
            capabilities=ServiceCapabilities(
                supported_formats=["text", "markdown", "html"],
                max_tokens=4000,
                supported_languages=LANGUAGES,
                special_features=BLOG_WRITER_FEATURES,
                quality=BLOG_WRITER_QUALITY,
            ),
            endpoints=[
                ServiceEndpoint(
                    url=settings.BLOG_WRITER_API_URL,
                    authentication=AuthConfig(type="api-key", key=settings.BLOG_WRITER_API_KEY),
                )
            ],
            cost=CostStructure(input_tokens=0.001, output_tokens=0.002, base_cost=0.01),
            limits=ServiceLimits(max_tokens=4000, max_requests_per_minute=60, supported_languages=LANGUAGES),
            metadata=ServiceMetadata(
                provider="AI Blog Writer Service",
                version="1.0.0",
                description=BLOG_WRITER_DESCRIPTION,
                special_features=BLOG_WRITER_FEATURES,
            ),
        )
    ]
