"""
Pytest configuration for SmartRack auth tests.
Sets up the Python path, the test environment and in-memory stores.

The in-memory stores implement the same async interface as the PostgreSQL
services, including conditional revocation: a revoke only affects rows that
are not revoked yet and reports how many it changed. Every method yields to
the event loop first, so concurrent callers interleave like they would
against the database.
"""

import asyncio
import itertools
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

# Add the project root to Python path for all tests
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set up test environment variables
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-smartrack-tests")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from smartrack.auth.auth_service import AuthService  # noqa: E402
from smartrack.auth.jwt_codec import JwtCodec  # noqa: E402
from smartrack.core.config_manager import ApplicationSettings  # noqa: E402
from smartrack.models.db_models import (  # noqa: E402
    GatewayDeviceRecord,
    RefreshTokenRecord,
    ResetPasswordRequestRecord,
    UserRecord,
    UserRole,
)
from smartrack.services.email_service import EmailService  # noqa: E402
from smartrack.utils.password_hashing import PasswordHasher  # noqa: E402

USER_PASSWORD = "Secret1!pass"
DEVICE_SECRET = "9f2c7e61d0b24a53a8b1f7c3e2d4a6b8"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# IN-MEMORY STORES
# ============================================================================


class InMemoryUsersService:
    """Users table held in a dictionary."""

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self._ids = itertools.count(1)

    def add_user(self, **fields) -> UserRecord:
        user = UserRecord(id=next(self._ids), **fields)
        self.users[user.id] = user
        return user

    async def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        await asyncio.sleep(0)
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        await asyncio.sleep(0)
        email = email.strip().lower()
        for user in self.users.values():
            if user.email.lower() == email:
                return user
        return None


class InMemoryGatewayDevicesService:
    """Gateway devices held in a dictionary."""

    def __init__(self):
        self.devices: Dict[int, GatewayDeviceRecord] = {}
        self._ids = itertools.count(1)

    def add_device(self, serial_number: str, device_secret: str) -> GatewayDeviceRecord:
        device = GatewayDeviceRecord(
            id=next(self._ids), serial_number=serial_number, device_secret=device_secret
        )
        self.devices[device.id] = device
        return device

    async def get_gateway_device_by_serial(
        self, serial_number: str
    ) -> Optional[GatewayDeviceRecord]:
        await asyncio.sleep(0)
        for device in self.devices.values():
            if device.serial_number == serial_number:
                return device
        return None

    async def mark_connected(self, device_id: int) -> None:
        await asyncio.sleep(0)
        self.devices[device_id].last_connected = _now()


class InMemoryRefreshTokensService:
    """Refresh token ledger held in a dictionary."""

    def __init__(self):
        self.tokens: Dict[int, RefreshTokenRecord] = {}
        self._ids = itertools.count(1)

    async def add_refresh_token(
        self, user_id: int, jti: str, valid_until: datetime
    ) -> RefreshTokenRecord:
        await asyncio.sleep(0)
        token = RefreshTokenRecord(
            id=next(self._ids),
            user_id=user_id,
            jti=jti,
            created_at=_now(),
            valid_until=valid_until,
        )
        self.tokens[token.id] = token
        return token

    async def get_valid_refresh_token_by_jti(
        self, user_id: int, jti: str
    ) -> Optional[RefreshTokenRecord]:
        await asyncio.sleep(0)
        for token in self.tokens.values():
            if token.jti == jti and token.user_id == user_id and token.is_usable():
                return token
        return None

    async def get_users_non_revoked_tokens(
        self, user_id: int
    ) -> List[RefreshTokenRecord]:
        await asyncio.sleep(0)
        tokens = [
            t for t in self.tokens.values() if t.user_id == user_id and t.is_usable()
        ]
        return sorted(tokens, key=lambda t: (t.created_at, t.id), reverse=True)

    def _revoke(self, tokens: List[RefreshTokenRecord]) -> int:
        revoked = 0
        for token in tokens:
            if token.revoked_at is None:
                token.revoked_at = _now()
                revoked += 1
        return revoked

    async def revoke_tokens_by_ids(self, *ids: int) -> int:
        await asyncio.sleep(0)
        return self._revoke([self.tokens[i] for i in ids if i in self.tokens])

    async def revoke_tokens_by_jti(self, *jtis: str) -> int:
        await asyncio.sleep(0)
        return self._revoke([t for t in self.tokens.values() if t.jti in jtis])

    def usable_ids(self, user_id: int) -> List[int]:
        return sorted(
            t.id for t in self.tokens.values() if t.user_id == user_id and t.is_usable()
        )


class InMemoryResetPasswordRequestsService:
    """
    Reset password requests held in a dictionary. Completing a reset writes
    the new password hash to the users store.
    """

    def __init__(self, users_store: InMemoryUsersService):
        self.users_store = users_store
        self.requests: Dict[int, ResetPasswordRequestRecord] = {}
        self._ids = itertools.count(1)

    async def insert_reset_password_request(
        self,
        user_id: int,
        reset_request_code_hash: str,
        valid_until: Optional[datetime],
    ) -> ResetPasswordRequestRecord:
        await asyncio.sleep(0)
        request = ResetPasswordRequestRecord(
            id=next(self._ids),
            user_id=user_id,
            reset_request_code_hash=reset_request_code_hash,
            valid_until=valid_until,
        )
        self.requests[request.id] = request
        return request

    async def find_valid_reset_password_request_by_id(
        self, request_id: int
    ) -> Optional[ResetPasswordRequestRecord]:
        await asyncio.sleep(0)
        request = self.requests.get(request_id)
        if request is None or not request.is_consumable():
            return None
        return request.model_copy()

    async def complete_password_reset(
        self, request_id: int, user_id: int, password_hash: str
    ) -> bool:
        await asyncio.sleep(0)
        request = self.requests.get(request_id)
        if request is None or request.is_used:
            return False
        if user_id not in self.users_store.users:
            raise ValueError(f"User {user_id} does not exist")
        self.users_store.users[user_id] = self.users_store.users[user_id].model_copy(
            update={"password_hash": password_hash}
        )
        for other in self.requests.values():
            if other.user_id == user_id:
                other.is_used = True
        return True

    async def disable_users_reset_password_requests(self, user_id: int) -> int:
        await asyncio.sleep(0)
        disabled = 0
        for request in self.requests.values():
            if request.user_id == user_id and not request.is_used:
                request.is_used = True
                disabled += 1
        return disabled


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def test_settings():
    """Settings with fast hashing and the default session limits."""
    return ApplicationSettings(
        jwt_secret_key="test-secret-key-for-smartrack-tests",
        bcrypt_rounds=4,
        max_refresh_tokens=5,
        refresh_token_days_life=7,
        reset_password_request_validity_hours=1,
        frontend_reset_password_link="https://app.smartrack.io/reset-password",
        smtp_host=None,
    )


@pytest.fixture
def jwt_codec(test_settings):
    return JwtCodec(test_settings)


@pytest.fixture
def password_hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def users_store():
    return InMemoryUsersService()


@pytest.fixture
def devices_store():
    return InMemoryGatewayDevicesService()


@pytest.fixture
def refresh_tokens_store():
    return InMemoryRefreshTokensService()


@pytest.fixture
def reset_requests_store(users_store):
    return InMemoryResetPasswordRequestsService(users_store)


@pytest.fixture
def email_service():
    """Email service double recording the sent emails."""
    return AsyncMock(spec=EmailService)


@pytest.fixture
def auth_service(
    test_settings,
    users_store,
    devices_store,
    refresh_tokens_store,
    reset_requests_store,
    email_service,
    jwt_codec,
    password_hasher,
):
    return AuthService(
        test_settings,
        users_service=users_store,
        gateway_devices_service=devices_store,
        refresh_tokens_service=refresh_tokens_store,
        reset_password_requests_service=reset_requests_store,
        email_service=email_service,
        jwt_codec=jwt_codec,
        password_hasher=password_hasher,
    )


@pytest.fixture
def org_user(users_store, password_hasher):
    """Organization member with a password."""
    return users_store.add_user(
        organization_id=1,
        organization_name="Acme Retail",
        role=UserRole.ORG_USER,
        email="jane@acme.io",
        password_hash=password_hasher.hash_password(USER_PASSWORD),
        name="Jane Doe",
    )


@pytest.fixture
def sys_admin(users_store, password_hasher):
    """System administrator with a password."""
    return users_store.add_user(
        role=UserRole.SYS_ADMIN,
        email="admin@smartrack.io",
        password_hash=password_hasher.hash_password(USER_PASSWORD),
        name="Sam Admin",
    )


@pytest.fixture
def invited_user(users_store):
    """Organization admin who has not set a password yet."""
    return users_store.add_user(
        organization_id=1,
        organization_name="Acme Retail",
        role=UserRole.ORG_ADMIN,
        email="olivia@acme.io",
        name="Olivia Admin",
    )


@pytest.fixture
def deleted_user(users_store, password_hasher):
    """Deactivated organization member."""
    return users_store.add_user(
        organization_id=1,
        organization_name="Acme Retail",
        role=UserRole.ORG_USER,
        email="gone@acme.io",
        password_hash=password_hasher.hash_password(USER_PASSWORD),
        name="Gone User",
        deleted_at=_now() - timedelta(days=1),
    )


@pytest.fixture
def gateway_device(devices_store, password_hasher):
    return devices_store.add_device(
        "GW-0001-2024", password_hasher.hash_password(DEVICE_SECRET)
    )
