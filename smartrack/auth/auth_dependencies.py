"""
FastAPI Authentication Dependencies
-----------------------------------
Per-route authentication requirements for the two principal kinds, human
users and IoT gateway devices.

Each route declares a requirement per axis:

- REQUIRED: a valid token of the kind must be presented, otherwise 401
- OPTIONAL: the identity is resolved when a valid token is presented
- DENIED: the route refuses callers holding a valid token of the kind (403)
- None: the axis is not resolved at all

Both axes read the same bearer token, extracted once per request. A user token
never validates on the device axis and vice versa, because the audiences differ.

Usage:
    @router.get("/me")
    async def me(context: AuthContext = Depends(require_user)): ...

    @router.get("/iot", dependencies=[Depends(AuthGuard(user=AuthRequirement.DENIED,
                                                          device=AuthRequirement.REQUIRED))])
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from fastapi import Depends, Header, Request
from loguru import logger

from smartrack.api.dependencies import get_jwt_codec
from smartrack.auth.jwt_codec import JwtCodec
from smartrack.core.errors import InvalidTokenError, Unauthenticated, Unauthorized
from smartrack.models.auth_models import VerifiedUserToken
from smartrack.models.db_models import UserRole

BEARER_PREFIX = "Bearer "


class AuthRequirement(str, Enum):
    """Authentication requirement of a route for one principal kind."""

    REQUIRED = "required"
    OPTIONAL = "optional"
    DENIED = "denied"


@dataclass(frozen=True)
class AuthContext:
    """Identities resolved for the current request."""

    user: Optional[VerifiedUserToken] = None
    device: Optional[int] = None


def extract_bearer_token(
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.
    The scheme is matched case-sensitively.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX) :] or None


def resolve_user(
    requirement: AuthRequirement, token: Optional[str], codec: JwtCodec
) -> Optional[VerifiedUserToken]:
    """
    Apply a user requirement to the presented token.

    Raises:
        Unauthenticated: REQUIRED and the token is missing or invalid
        Unauthorized: DENIED and the token is a valid user token
    """
    user = None
    if token:
        try:
            user = codec.verify_user_access_token(token)
        except InvalidTokenError as e:
            logger.debug(f"User token rejected: {e}")

    if requirement == AuthRequirement.REQUIRED and user is None:
        raise Unauthenticated()
    if requirement == AuthRequirement.DENIED and user is not None:
        logger.warning(f"User {user.user_id} denied access to a device-only route")
        raise Unauthorized()
    if requirement == AuthRequirement.DENIED:
        return None
    return user


def resolve_device(
    requirement: AuthRequirement, token: Optional[str], codec: JwtCodec
) -> Optional[int]:
    """
    Apply a device requirement to the presented token.

    Raises:
        Unauthenticated: REQUIRED and the token is missing or invalid
        Unauthorized: DENIED and the token is a valid device token
    """
    device_id = None
    if token:
        try:
            device_id = codec.verify_device_access_token(token)
        except InvalidTokenError as e:
            logger.debug(f"Device token rejected: {e}")

    if requirement == AuthRequirement.REQUIRED and device_id is None:
        raise Unauthenticated()
    if requirement == AuthRequirement.DENIED and device_id is not None:
        logger.warning(f"Device {device_id} denied access to a user-only route")
        raise Unauthorized()
    if requirement == AuthRequirement.DENIED:
        return None
    return device_id


class AuthGuard:
    """
    Dependency class resolving the declared axes of a route.

    The resolved identities are also stored on ``request.state.user`` and
    ``request.state.device``, only for the axes the guard declares.
    """

    def __init__(
        self,
        user: Optional[AuthRequirement] = None,
        device: Optional[AuthRequirement] = None,
    ):
        self.user = user
        self.device = device

    def __call__(
        self,
        request: Request,
        token: Optional[str] = Depends(extract_bearer_token),
        codec: JwtCodec = Depends(get_jwt_codec),
    ) -> AuthContext:
        user = None
        device_id = None

        if self.user is not None:
            user = resolve_user(self.user, token, codec)
            request.state.user = user
        if self.device is not None:
            device_id = resolve_device(self.device, token, codec)
            request.state.device = device_id

        return AuthContext(user=user, device=device_id)


require_user = AuthGuard(user=AuthRequirement.REQUIRED)
"""Any authenticated user. Device tokens are not resolved."""

require_device = AuthGuard(user=AuthRequirement.DENIED, device=AuthRequirement.REQUIRED)
"""Authenticated gateway devices only. Callers holding a user token get 403."""


class RoleChecker:
    """
    Dependency class for role-based authorization of users.

    Usage:
        @router.get("/admin-only", dependencies=[Depends(require_sys_admin)])
    """

    def __init__(self, allowed_roles: List[UserRole]):
        """
        Initialize role checker with allowed roles.

        Args:
            allowed_roles: Roles that can access the endpoint
        """
        self.allowed_roles = [UserRole(role) for role in allowed_roles]

    def __call__(self, context: AuthContext = Depends(require_user)) -> VerifiedUserToken:
        """
        Check if the user's role is authorized for the endpoint.

        Raises:
            Unauthorized: The user's role is not allowed
        """
        user = context.user
        if user.role not in self.allowed_roles:
            logger.warning(f"Access denied for user {user.user_id} with role {user.role.value}")
            raise Unauthorized(
                "You are not authorized to execute this action. Required roles: "
                + ", ".join(role.value for role in self.allowed_roles)
            )
        return user


require_sys_admin = RoleChecker([UserRole.SYS_ADMIN])
require_org_admin = RoleChecker([UserRole.ORG_ADMIN, UserRole.SYS_ADMIN])
require_any_user = RoleChecker(list(UserRole))
