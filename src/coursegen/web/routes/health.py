"""Health check endpoint."""

from fastapi import APIRouter

from coursegen.config.app_config import ConfigurationError, require_api_config
from coursegen.web.schemas import HealthResponse
from coursegen.web.services import get_services

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report liveness and whether generation can reach the AI API.

    Status is "degraded" while the API base URL or key is missing; usage
    reports still work then, outline generation does not.
    """
    config = get_services().config
    try:
        require_api_config(config)
        configured = True
    except ConfigurationError:
        configured = False

    return HealthResponse(
        status="ok" if configured else "degraded",
        backend=config.generation.backend,
        api_configured=configured,
    )
