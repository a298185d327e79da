"""
Database Record Models
----------------------
Pydantic models matching the rows the auth subsystem reads from PostgreSQL.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class UserRole(str, Enum):
    """User roles for role-based access control"""

    SYS_ADMIN = "sys_admin"  # Platform administrators, not bound to an organization
    ORG_ADMIN = "org_admin"  # Manage users and devices of their organization
    ORG_USER = "org_user"  # Regular members of an organization


class UserRecord(BaseModel):
    """Row of the "user" table, optionally joined with its organization name."""

    id: int = Field(..., description="Internal user ID")
    organization_id: Optional[int] = Field(
        default=None, description="Organization of the user, null for system admins"
    )
    organization_name: Optional[str] = Field(
        default=None, description="Name of the user's organization"
    )
    role: UserRole = Field(..., description="User role")
    email: str = Field(..., description="Unique email address")
    password_hash: Optional[str] = Field(
        default=None, description="bcrypt hash, null until the invite is accepted"
    )
    name: str = Field(..., description="Display name")
    deleted_at: Optional[datetime] = Field(
        default=None, description="Deactivation timestamp"
    )

    @model_validator(mode="after")
    def validate_organization(self) -> "UserRecord":
        """Only system admins may exist outside an organization."""
        if self.role != UserRole.SYS_ADMIN and self.organization_id is None:
            raise ValueError(
                f"User {self.id} in role '{self.role.value}' must have an organization"
            )
        return self

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)


class GatewayDeviceRecord(BaseModel):
    """Row of the gateway_device table."""

    id: int
    serial_number: str
    device_secret: str = Field(..., description="bcrypt hash of the device secret")
    last_connected: Optional[datetime] = None


class RefreshTokenRecord(BaseModel):
    """Row of the user_refresh_token ledger."""

    id: int
    user_id: int
    jti: str
    created_at: datetime
    valid_until: datetime
    revoked_at: Optional[datetime] = None

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """A token is usable while it is not revoked and not past its validity."""
        now = now or datetime.now(timezone.utc)
        return self.revoked_at is None and self.valid_until > now


class ResetPasswordRequestRecord(BaseModel):
    """Row of the user_reset_password_request table."""

    id: int
    user_id: int
    reset_request_code_hash: str
    valid_until: Optional[datetime] = Field(
        default=None, description="Null for non-expiring initial invites"
    )
    is_used: bool = False

    def is_consumable(self, now: Optional[datetime] = None) -> bool:
        """One-shot requests are consumable while unused and not expired."""
        now = now or datetime.now(timezone.utc)
        if self.is_used:
            return False
        return self.valid_until is None or self.valid_until > now
