"""Health endpoint."""

from fastapi import APIRouter, Depends

from sqlterm.api.dependencies import get_services
from sqlterm.api.models import HealthResponse
from sqlterm.services.registry import Services

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(services: Services = Depends(get_services)) -> HealthResponse:
    """Health check."""
    database_ok = await services.database.health_check()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=services.settings.app_version,
        database=database_ok,
    )
