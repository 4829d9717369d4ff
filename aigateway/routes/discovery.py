"""Machine-readable catalog of what the gateway can route to."""

from fastapi import APIRouter, Request

from aigateway.config import RATE_LIMIT_PROFILES, settings
from aigateway.models.response import ManagementResponse

router = APIRouter()


@router.get("/discovery", response_model=ManagementResponse)
async def get_discovery(request: Request):
    """List providers, router services and rate-limit profiles.

    Credentials are never included.
    """
    api_manager = getattr(request.app.state, "api_manager", None)
    registry = getattr(request.app.state, "service_registry", None)

    providers = []
    if api_manager:
        for provider in api_manager.providers.values():
            providers.append(
                {
                    "id": provider.id,
                    "name": provider.name,
                    "type": provider.type.value,
                    "status": provider.status.health_status.value,
                    "is_active": provider.status.is_active,
                    "environments": [
                        {
                            "id": env.id,
                            "name": env.name,
                            "priority": env.priority,
                            "is_active": env.is_active,
                            "health_status": env.health_status.value,
                        }
                        for env in provider.environments
                    ],
                    "supported_endpoints": provider.capabilities.supported_endpoints,
                    "special_features": provider.capabilities.special_features,
                }
            )

    services = []
    if registry:
        for service in registry.list_services():
            health = registry.get_health_status(service.id)
            services.append(
                {
                    "id": service.id,
                    "name": service.name,
                    "type": service.type.value,
                    "status": health.status.value if health else "unknown",
                    "special_features": service.metadata.special_features,
                }
            )

    return ManagementResponse.ok(
        {
            "providers": providers,
            "services": services,
            "authentication": ["bearer", settings.API_KEY_HEADER],
            "rate_limits": RATE_LIMIT_PROFILES,
        }
    )
