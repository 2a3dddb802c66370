"""Health check schemas."""
from pydantic import BaseModel, Field
from typing import Dict, Optional, Literal
from datetime import datetime, timezone

HealthStatus = Literal["healthy", "unhealthy", "degraded"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComponentHealth(BaseModel):
    """Health status of a single component."""
    status: HealthStatus = Field(description="Component health status")
    message: Optional[str] = Field(default=None, description="What the check observed")
    latency_ms: Optional[float] = Field(default=None, description="Time the check took in milliseconds")
    details: Optional[Dict] = Field(default=None, description="Component-specific details")


class HealthCheckResponse(BaseModel):
    status: HealthStatus = Field(description="Worst status across all components")
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str
    environment: str
    uptime_seconds: float
    components: Dict[str, ComponentHealth]


class LivenessResponse(BaseModel):
    status: str = Field(default="alive")
    timestamp: datetime = Field(default_factory=_utcnow)


class ReadinessResponse(BaseModel):
    status: Literal["ready", "not_ready"]
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: Dict[str, bool] = Field(description="Result of each readiness check")
