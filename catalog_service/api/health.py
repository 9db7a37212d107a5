"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from catalog_service.api.dependencies import SessionDep, SettingsDep

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="catalog-service",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check(session: SessionDep) -> dict[str, str]:
    """Check if the store accepts queries.

    Returns:
        Readiness status.
    """
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
