"""
Service-level routes. Entity endpoints belong to the host application.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from .dependencies import SettingsDep, check_database_health
from .registry import RepositoryRegistry, get_registry
from .schemas import ComponentHealth, HealthResponse, HealthStatus

LOGGER = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])

RegistryDep = Annotated[RepositoryRegistry, Depends(get_registry)]


@health_router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns database status and the entities with a registered repository.",
)
async def health_check(settings: SettingsDep, registry: RegistryDep) -> HealthResponse:
    """Report database connectivity and the registered entities."""
    db_healthy, db_latency = await check_database_health(settings)
    database = ComponentHealth(
        name="database",
        status=HealthStatus.HEALTHY if db_healthy else HealthStatus.UNHEALTHY,
        latency_ms=db_latency,
        message=None if db_healthy else "Database connection failed",
    )

    return HealthResponse(
        status=database.status,
        version=settings.app.version,
        environment=settings.app.environment.value,
        components=[database],
        entities=sorted(entity.__name__ for entity in registry.entity_types),
    )


__all__ = ["health_router"]
