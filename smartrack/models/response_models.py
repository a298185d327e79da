"""
Shared Response Models
----------------------
Error envelope and health check responses used across routers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """Machine readable error code with a human readable message."""

    code: str = Field(..., description="Stable error code, e.g. 'unauthenticated.expired'")
    message: str = Field(..., description="Human-readable error message")
    issues: Optional[Dict[str, Any]] = Field(
        default=None, description="Per-field validation issues"
    )


class ErrorResponse(BaseModel):
    """
    Standard error response schema.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "unauthenticated.invalid_credentials",
                    "message": "Provided credentials are invalid.",
                }
            }
        }
    )

    error: ErrorBody


class HealthStatus(BaseModel):
    """
    Health check response schema.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2025-10-13T10:30:00Z",
                "version": "1.0.0",
            }
        }
    )

    status: str = Field(..., description="API health status")
    version: Optional[str] = Field(default=None, description="Application version")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Health check timestamp",
    )


class DependencyHealth(BaseModel):
    """
    Dependency health response model.

    Each infrastructure component is represented as a boolean indicating
    whether it is operational.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "postgresql": True,
                "email": True,
                "status": "healthy",
                "timestamp": "2025-10-13T10:30:00Z",
            }
        }
    )

    postgresql: bool = Field(..., description="PostgreSQL database health status")
    email: bool = Field(..., description="Whether outgoing email is configured")
    status: str = Field(
        ..., description="Overall health status: 'healthy' or 'unhealthy'"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Health check timestamp",
    )
