"""
Pydantic schemas for the service endpoints.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Service health status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status for a single component."""

    name: str = Field(..., description="Component name.")
    status: HealthStatus = Field(..., description="Component status.")
    latency_ms: float | None = Field(default=None, description="Response latency in milliseconds.")
    message: str | None = Field(default=None, description="Optional status message.")


class HealthResponse(BaseModel):
    """Aggregated health check response."""

    status: HealthStatus = Field(..., description="Overall service status.")
    version: str = Field(..., description="Application version.")
    environment: str = Field(..., description="Deployment environment.")
    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Individual component health statuses.",
    )
    entities: list[str] = Field(
        default_factory=list,
        description="Entity classes with a registered repository.",
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Error type or category.")
    message: str = Field(..., description="Human-readable error description.")
    context: dict[str, str] = Field(default_factory=dict, description="Values tied to the error.")
    request_id: str | None = Field(default=None, description="Request trace ID for debugging.")


__all__ = ["ComponentHealth", "ErrorResponse", "HealthResponse", "HealthStatus"]
