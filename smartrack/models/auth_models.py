"""
Authentication Models
---------------------
Pydantic models for the authentication endpoints and the JWT codec.
Defines the structure for login, device login, password reset requests and
the verified token payloads.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from smartrack.models.db_models import UserRole
from smartrack.utils.password_hashing import BCRYPT_MAX_PASSWORD_BYTES

PASSWORD_UPPERCASE = re.compile(r"[A-Z]")
PASSWORD_LOWERCASE = re.compile(r"[a-z]")
PASSWORD_DIGITS = re.compile(r"[0-9]")
PASSWORD_SPECIAL_CHARACTERS = re.compile(r"[^\w\s]|_")


# ============================================================================
# VERIFIED TOKEN PAYLOADS
# ============================================================================


@dataclass(frozen=True)
class VerifiedUserToken:
    """Identity carried by a valid user access token."""

    user_id: int
    role: UserRole


@dataclass(frozen=True)
class VerifiedRefreshToken:
    """Identity carried by a valid refresh token."""

    user_id: int
    jti: str


@dataclass(frozen=True)
class RefreshTokenGrant:
    """Signed refresh token and the moment it stops being valid."""

    jwt: str
    valid_until: datetime


@dataclass(frozen=True)
class TokenPair:
    """Result of a successful login or refresh."""

    access: str
    refresh: RefreshTokenGrant


# ============================================================================
# REQUESTS
# ============================================================================


class LoginRequest(BaseModel):
    """Credentials of a human user."""

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "jane@smartrack.io", "password": "Secret1!pass"}
        }
    )


class DeviceLoginRequest(BaseModel):
    """Credentials of an IoT gateway device."""

    serial_number: str = Field(..., description="Serial number of the gateway")
    device_secret: str = Field(..., description="Secret stored on the gateway")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "serial_number": "GW-0001-2024",
                "device_secret": "9f2c7e61d0b24a53a8b1f7c3e2d4a6b8",
            }
        }
    )


class PasswordResetRequest(BaseModel):
    """Request to receive a reset password email."""

    email: EmailStr = Field(..., description="Email of the account to reset")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip()


class NewPasswordRequest(BaseModel):
    """New password together with the security code from the reset link."""

    code: str = Field(..., min_length=1, description="Security code from the link")
    password: str = Field(
        ...,
        min_length=8,
        description=(
            "New password with at least one uppercase letter, one lowercase "
            "letter, one digit and one special character"
        ),
    )

    @field_validator("password")
    @classmethod
    def validate_password_complexity(cls, v: str) -> str:
        """Enforce the password complexity policy."""
        if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password must not exceed {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        if not PASSWORD_UPPERCASE.search(v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not PASSWORD_LOWERCASE.search(v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not PASSWORD_DIGITS.search(v):
            raise ValueError("Password must contain at least one digit")
        if not PASSWORD_SPECIAL_CHARACTERS.search(v):
            raise ValueError("Password must contain at least one special character")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"code": "Zk3vQ9pL0aWm2Rt8Yx5Nc7Hb", "password": "Abcdef1!"}
        }
    )


# ============================================================================
# RESPONSES
# ============================================================================


class AuthResponse(BaseModel):
    """Access token returned by login, refresh and device login."""

    access: str = Field(..., description="JWT access token")


class UserIdentityResponse(BaseModel):
    """Profile of the authenticated user."""

    id: int
    email: str
    name: str
    role: UserRole
    organization_id: Optional[int] = None
    organization_name: Optional[str] = None
