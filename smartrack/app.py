"""
FastAPI Application Entry Point
-------------------------------
Main application initialization and configuration.
Registers routers, exception handlers, middleware and lifecycle handlers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from smartrack.api import auth_endpoints, health_endpoints
from smartrack.api.error_handling import register_exception_handlers
from smartrack.core.config_manager import settings
from smartrack.core.database_connection import db_manager
from smartrack.core.logger_setup import configure_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logger(settings)

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")

    logger.info("Checking PostgreSQL connectivity...")
    await db_manager.initialize(settings)
    try:
        await db_manager.ping()
        logger.info("[SUCCESS] PostgreSQL connected and ready")
    except Exception as e:
        logger.error(f"[FAILED] PostgreSQL: {e}")
        await db_manager.close()
        raise

    if not settings.smtp_host:
        logger.warning("SMTP is not configured: emails will only be logged")

    logger.info("[SUCCESS] Application startup complete")

    yield

    logger.info("Shutting down application")
    await db_manager.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="SmartRack authentication and token lifecycle API",
    lifespan=lifespan,
    debug=settings.debug,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    swagger_ui_parameters={"displayRequestDuration": True},
)

# The refresh cookie requires credentialed CORS with explicit origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health_endpoints.router)
app.include_router(auth_endpoints.router)


@app.get("/")
async def root():
    """Root endpoint with basic information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/api/docs",
    }
