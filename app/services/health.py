"""Health checks for the database, notification worker and host resources."""
import asyncio
import logging
import time
from typing import Dict, Optional, Tuple

import psutil

from app.core.config import Settings, settings as default_settings
from app.core.database import DatabaseManager, db_manager
from app.schemas.health import ComponentHealth, HealthCheckResponse
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

APPLICATION_START_TIME = time.time()


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 2)


class HealthCheckService:
    def __init__(
        self,
        database: DatabaseManager = None,
        notifier: Optional[NotificationService] = None,
        settings: Settings = None,
    ):
        self.database = database or db_manager
        self.notifier = notifier
        self.settings = settings or default_settings

    async def check_database(self) -> ComponentHealth:
        start = time.time()

        if not self.database.is_initialized:
            return ComponentHealth(
                status="unhealthy",
                message="Database not initialized",
                latency_ms=_elapsed_ms(start),
                details={"initialized": False},
            )

        try:
            await self.database.ping()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return ComponentHealth(
                status="unhealthy",
                message=f"Database connection failed: {e}",
                latency_ms=_elapsed_ms(start),
                details={"initialized": True, "connected": False},
            )

        return ComponentHealth(
            status="healthy",
            message="Database connection successful",
            latency_ms=_elapsed_ms(start),
            details={"initialized": True, "connected": True},
        )

    async def check_notifications(self) -> ComponentHealth:
        """The worker should be running; a queue near capacity is degraded."""
        if self.notifier is None:
            return ComponentHealth(status="degraded", message="Notification service not configured")

        capacity = self.settings.NOTIFICATION_QUEUE_SIZE
        pending = self.notifier.pending
        details = {
            "running": self.notifier.is_running,
            "pending": pending,
            "capacity": capacity,
        }

        if not self.notifier.is_running:
            return ComponentHealth(status="unhealthy", message="Notification worker not running", details=details)
        if capacity and pending >= capacity * 0.9:
            return ComponentHealth(status="degraded", message="Notification queue almost full", details=details)
        return ComponentHealth(status="healthy", message="Notification worker running", details=details)

    async def check_system_resources(self) -> ComponentHealth:
        """Check CPU, memory and disk usage."""
        start = time.time()

        try:
            cpu_percent = psutil.cpu_percent(interval=0.1)
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')
        except Exception as e:
            return ComponentHealth(
                status="unhealthy",
                message=f"System resource check failed: {str(e)}",
                latency_ms=_elapsed_ms(start),
            )

        status = "healthy"
        message = "System resources within normal limits"
        if cpu_percent > 90 or memory.percent > 90 or disk.percent > 90:
            status = "unhealthy"
            message = "System resources critically high"
        elif cpu_percent > 75 or memory.percent > 75 or disk.percent > 85:
            status = "degraded"
            message = "System resources elevated"

        return ComponentHealth(
            status=status,
            message=message,
            latency_ms=_elapsed_ms(start),
            details={
                "cpu_percent": round(cpu_percent, 2),
                "memory_percent": round(memory.percent, 2),
                "memory_available_mb": round(memory.available / (1024 * 1024), 2),
                "disk_percent": round(disk.percent, 2),
                "disk_free_gb": round(disk.free / (1024 * 1024 * 1024), 2),
            },
        )

    async def check_configuration(self) -> ComponentHealth:
        issues = []
        if self.settings.FIXED_OTP:
            issues.append("FIXED_OTP is set; every OTP is the same code")
        if self.settings.EMAIL_PROVIDER == "console":
            issues.append("EMAIL_PROVIDER is console; emails are only logged")

        details = {
            "environment": self.settings.ENVIRONMENT,
            "email_provider": self.settings.EMAIL_PROVIDER,
        }
        if issues and self.settings.ENVIRONMENT == "prod":
            return ComponentHealth(status="degraded", message="Configuration has issues", details={**details, "issues": issues})
        return ComponentHealth(status="healthy", message="Configuration valid", details=details)

    def get_uptime(self) -> float:
        return time.time() - APPLICATION_START_TIME

    async def get_comprehensive_health(self) -> HealthCheckResponse:
        database, notifications, system, config = await asyncio.gather(
            self.check_database(),
            self.check_notifications(),
            self.check_system_resources(),
            self.check_configuration(),
        )

        components = {
            "database": database,
            "notifications": notifications,
            "system_resources": system,
            "configuration": config,
        }

        statuses = [comp.status for comp in components.values()]
        if "unhealthy" in statuses:
            overall_status = "unhealthy"
        elif "degraded" in statuses:
            overall_status = "degraded"
        else:
            overall_status = "healthy"

        return HealthCheckResponse(
            status=overall_status,
            version=self.settings.APP_VERSION,
            environment=self.settings.ENVIRONMENT,
            uptime_seconds=round(self.get_uptime(), 2),
            components=components,
        )

    async def check_readiness(self) -> Tuple[bool, Dict[str, bool]]:
        database = await self.check_database()
        checks = {
            "configuration_loaded": True,
            "database_connected": database.status != "unhealthy",
        }
        return all(checks.values()), checks
