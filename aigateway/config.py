import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aigateway.utils import config

# Read YAML defaults from the service config directory (respects CONFIG_DIR override)
CONFIG_DIR = Path(os.environ.get("CONFIG_DIR", "config"))
config.load(CONFIG_DIR)


def _get_bool(key: str, default: bool) -> bool:
    value = config.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def _get_int(key: str, default: int) -> int:
    try:
        return int(config.get(key, default))
    except (TypeError, ValueError):
        return default


def _get_float(key: str, default: float) -> float:
    try:
        return float(config.get(key, default))
    except (TypeError, ValueError):
        return default


class Settings(BaseSettings):
    """AI gateway settings: YAML defaults with environment overrides."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Service Configuration
    SERVICE_NAME: str = config.get("service.name", "ai-gateway")
    SERVICE_VERSION: str = config.get("service.version", "1.0.0")
    ENVIRONMENT: str = config.get("service.environment", "development")
    HOST: str = config.get("server.host", "0.0.0.0")
    PORT: int = _get_int("server.port", 8080)
    DEBUG: bool = _get_bool("service.debug", True)

    # Security Configuration
    JWT_SECRET_KEY: str = config.get("jwt.access_secret", "your-secret-key-change-in-production")
    JWT_ALGORITHM: str = config.get("jwt.algorithm", "HS256")
    API_KEY_HEADER: str = config.get("api_key.header", "X-API-Key")
    ADMIN_ROLES: list = config.get("auth.admin_roles", ["admin", "super_admin"])

    # Rate Limiting Configuration
    RATE_LIMIT_ENABLED: bool = _get_bool("rate_limiting.enabled", True)
    RATE_LIMIT_CLEANUP_INTERVAL: int = _get_int("rate_limiting.cleanup_interval_seconds", 60)

    # CORS Configuration
    CORS_ENABLED: bool = _get_bool("cors.enabled", True)
    CORS_ORIGINS: list = config.get("cors.origins", ["http://localhost:3000", "http://localhost:8080"])
    CORS_METHODS: list = config.get("cors.methods", ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    CORS_HEADERS: list = config.get("cors.headers", ["*"])

    # Outbound Request Configuration
    REQUEST_TIMEOUT: int = _get_int("requests.timeout", 30)

    # Health Check Configuration
    HEALTH_CHECK_INTERVAL: int = _get_int("health_check.interval_seconds", 30)
    HEALTH_CHECK_TIMEOUT: float = _get_float("health_check.timeout_seconds", 5.0)
    HEALTH_MONITOR_AUTOSTART: bool = _get_bool("health_check.autostart", False)

    # Blog Writer Provider Configuration
    BLOG_WRITER_API_URL: str = Field(
        default=config.get(
            "providers.blog_writer.url",
            "https://api-ai-blog-writer-613248238610.us-central1.run.app",
        ),
        validation_alias=AliasChoices("BLOG_WRITER_API_URL", "NEXT_PUBLIC_BLOG_WRITER_API_URL"),
    )
    BLOG_WRITER_API_KEY: Optional[str] = config.get("providers.blog_writer.api_key")
    BLOG_WRITER_TIMEOUT: int = _get_int("providers.blog_writer.timeout", 30)
    BLOG_WRITER_RETRY_ATTEMPTS: int = _get_int("providers.blog_writer.retry_attempts", 3)
    BLOG_WRITER_DEV_URL: str = config.get(
        "providers.blog_writer.dev_url",
        "https://api-ai-blog-writer-dev-613248238610.europe-west1.run.app",
    )
    BLOG_WRITER_STAGING_URL: str = config.get(
        "providers.blog_writer.staging_url",
        "https://api-ai-blog-writer-staging-613248238610.us-east1.run.app",
    )
    BLOG_WRITER_PROD_URL: str = config.get(
        "providers.blog_writer.prod_url",
        "https://api-ai-blog-writer-613248238610.us-central1.run.app",
    )
    BLOG_WRITER_DEV_API_KEY: Optional[str] = config.get("providers.blog_writer.dev_api_key")
    BLOG_WRITER_STAGING_API_KEY: Optional[str] = config.get("providers.blog_writer.staging_api_key")
    BLOG_WRITER_PROD_API_KEY: Optional[str] = config.get("providers.blog_writer.prod_api_key")

    # Logging Configuration
    LOG_LEVEL: str = config.get("logging.level", "INFO")

    # OpenAPI Configuration
    OPENAPI_TITLE: str = config.get("api_docs.title", "AI Gateway")
    OPENAPI_VERSION: str = config.get("api_docs.version", "1.0.0")
    OPENAPI_DESCRIPTION: str = config.get(
        "api_docs.description", "Routing gateway for AI content generation providers"
    )


def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def _profile(name: str, window_seconds: int, max_requests: int) -> Dict[str, int]:
    return {
        "window_seconds": _get_int(f"rate_limiting.profiles.{name}.window_seconds", window_seconds),
        "max_requests": _get_int(f"rate_limiting.profiles.{name}.max_requests", max_requests),
    }


# Fixed-window limiter profiles, selected per route family
RATE_LIMIT_PROFILES: Dict[str, Dict[str, int]] = {
    "api": _profile("api", 15 * 60, 100),
    "blog_generation": _profile("blog_generation", 60 * 60, 10),
    "admin": _profile("admin", 5 * 60, 50),
    "health_check": _profile("health_check", 60, 60),
    "auth": _profile("auth", 15 * 60, 5),
}
