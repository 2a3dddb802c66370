"""Health check endpoints for monitoring and orchestration."""
from fastapi import APIRouter, Depends, status, Response
from app.schemas.health import (
    HealthCheckResponse,
    LivenessResponse,
    ReadinessResponse
)
from app.services.health import HealthCheckService
from app.services.notification_service import NotificationService, get_notification_service

router = APIRouter()


def get_health_service(
    notifier: NotificationService = Depends(get_notification_service),
) -> HealthCheckService:
    return HealthCheckService(notifier=notifier)


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Comprehensive Health Check",
)
async def health_check(
    response: Response,
    health_service: HealthCheckService = Depends(get_health_service),
):
    """
    Detailed status of the database, notification worker, host resources
    and configuration. Answers 503 when any component is unhealthy.
    """
    health = await health_service.get_comprehensive_health()
    if health.status == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return health


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness Probe",
)
async def liveness_probe():
    return LivenessResponse(status="alive")


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness Probe",
)
async def readiness_probe(
    response: Response,
    health_service: HealthCheckService = Depends(get_health_service),
):
    """Returns 200 when the database answers, 503 otherwise."""
    is_ready, checks = await health_service.check_readiness()

    if not is_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", checks=checks)
    return ReadinessResponse(status="ready", checks=checks)
