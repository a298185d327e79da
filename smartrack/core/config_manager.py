"""
Configuration Manager
--------------------
Centralized configuration management using Pydantic Settings.
All application settings are loaded from environment variables with validation.

The JWT signing secret has no default: the application refuses to start
when JWT_SECRET_KEY is missing.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class ApplicationSettings(BaseSettings):
    """Main application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application metadata
    app_name: str = Field(default="SmartRack API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # FastAPI server configuration
    fastapi_host: str = Field(default="0.0.0.0", description="FastAPI host")
    fastapi_port: int = Field(default=8000, description="FastAPI port")
    cors_allowed_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed to call the API with credentials (JSON list)",
    )

    # PostgreSQL database configuration
    database_host: str = Field(default="localhost", description="PostgreSQL host")
    database_port: int = Field(default=5432, description="PostgreSQL port")
    database_user: str = Field(default="smartrack", description="PostgreSQL user")
    database_password: str = Field(
        default="smartrack", description="PostgreSQL password"
    )
    database_name: str = Field(
        default="smartrack", description="PostgreSQL database name"
    )
    database_pool_size: int = Field(default=20, description="Connection pool size")
    database_max_overflow: int = Field(
        default=10, description="Max overflow connections"
    )

    # JWT configuration
    jwt_secret_key: str = Field(..., description="Secret used to sign every JWT")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_issuer: str = Field(default="smartrack", description="JWT issuer claim")
    jwt_app_audience: str = Field(
        default="smartrack-app", description="Audience of user (app) tokens"
    )
    jwt_device_audience: str = Field(
        default="smartrack-device", description="Audience of IoT gateway tokens"
    )
    jwt_access_token_expire_minutes: int = Field(
        default=10, ge=1, description="User access token lifetime in minutes"
    )
    jwt_device_token_expire_minutes: int = Field(
        default=5, ge=1, description="Device access token lifetime in minutes"
    )

    # Session configuration
    max_refresh_tokens: int = Field(
        default=5, ge=1, description="Max concurrent refresh tokens per user"
    )
    refresh_token_days_life: int = Field(
        default=7, ge=1, description="Refresh token lifetime in days"
    )
    reset_password_request_validity_hours: int = Field(
        default=1, ge=1, description="Reset password request validity in hours"
    )
    refresh_cookie_name: str = Field(
        default="refreshAuth", description="Name of the refresh token cookie"
    )
    refresh_cookie_secure: bool = Field(
        default=True, description="Send the refresh cookie over HTTPS only"
    )
    frontend_reset_password_link: str = Field(
        default="http://localhost:3000/reset-password",
        description="Frontend page where a new password is set",
    )
    bcrypt_rounds: int = Field(
        default=12, ge=4, le=31, description="bcrypt cost factor"
    )

    # Email (SMTP) configuration
    smtp_host: Optional[str] = Field(default=None, description="SMTP host")
    smtp_port: int = Field(default=587, description="SMTP port")
    smtp_user: Optional[str] = Field(default=None, description="SMTP user")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS for SMTP")
    email_from_address: Optional[str] = Field(
        default=None, description="Sender address of outgoing emails"
    )
    email_from_name: str = Field(default="SmartRack", description="Sender name")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is acceptable."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Reject blank signing secrets."""
        if not v or not v.strip():
            raise ValueError("JWT_SECRET_KEY must not be empty")
        return v

    @model_validator(mode="after")
    def validate_distinct_audiences(self) -> "ApplicationSettings":
        """User and device tokens must never share an audience."""
        if self.jwt_app_audience == self.jwt_device_audience:
            raise ValueError("jwt_app_audience and jwt_device_audience must differ")
        return self

    @property
    def database_url(self) -> str:
        """Construct async PostgreSQL database URL."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )


# Global settings instance, consumed by the composition root only
settings = ApplicationSettings()
