"""
Health Check Endpoints
---------------------
Health monitoring endpoints for the service and its dependencies.
Provides status checks for the database and outgoing email.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from loguru import logger

from smartrack.api.dependencies import get_email_service, get_settings
from smartrack.core.config_manager import ApplicationSettings
from smartrack.core.database_connection import db_manager
from smartrack.models.response_models import DependencyHealth, HealthStatus
from smartrack.services.email_service import EmailService

router = APIRouter(prefix="/api/v1/health", tags=["Health"])


@router.get("/", response_model=HealthStatus)
async def health_check(app_settings: ApplicationSettings = Depends(get_settings)):
    """
    Basic health check endpoint.
    Returns service status and version information.
    """
    logger.debug("Health check requested")

    return HealthStatus(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=app_settings.app_version,
    )


@router.get("/dependencies", response_model=DependencyHealth, status_code=200)
async def check_dependencies(email_service: EmailService = Depends(get_email_service)):
    """
    Check health of the service dependencies.

    Always returns 200 with per-component details. Email counts as healthy
    only when SMTP is configured; without it reset emails are only logged.
    """
    logger.debug("Dependency health check requested")

    postgresql_healthy = await _check_database()
    email_healthy = email_service.is_configured

    all_healthy = postgresql_healthy and email_healthy
    status = "healthy" if all_healthy else "unhealthy"

    if not all_healthy:
        logger.warning(
            f"Infrastructure health check detected issues: "
            f"postgresql={postgresql_healthy}, email={email_healthy}"
        )
    else:
        logger.info("All infrastructure components healthy")

    return DependencyHealth(
        postgresql=postgresql_healthy,
        email=email_healthy,
        status=status,
        timestamp=datetime.now(timezone.utc),
    )


async def _check_database() -> bool:
    """
    Check PostgreSQL database connectivity.

    Returns:
        bool: True if database is accessible
    """
    try:
        return await db_manager.ping()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
