"""
Authentication Service
----------------------
Orchestrates logins, refresh token rotation, device authentication, logout
and the reset password flow.

Refresh token lifecycle: issued -> rotated out | revoked | expired. A token
is terminal once revoked or past valid_until. Each user keeps at most
``max_refresh_tokens`` usable tokens; issuing a new one silently revokes the
oldest ones beyond that limit.

Refresh tokens are single use. The used token is revoked with a conditional
update before a new pair is issued, so of two concurrent refreshes with the
same token exactly one wins and the other fails as Expired.
"""

import asyncio
import secrets
import string
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from urllib.parse import urlencode

from loguru import logger

from smartrack.auth.jwt_codec import JwtCodec
from smartrack.core.config_manager import ApplicationSettings
from smartrack.core.errors import (
    BadRequest,
    Expired,
    InvalidCredentials,
    InvalidDeviceCredentials,
    InvalidTokenError,
    NotFound,
    PasswordNotSet,
)
from smartrack.models.auth_models import RefreshTokenGrant, TokenPair
from smartrack.models.db_models import ResetPasswordRequestRecord, UserRecord, UserRole
from smartrack.psql_db_services.gateway_devices_service import GatewayDevicesService
from smartrack.psql_db_services.refresh_tokens_service import RefreshTokensService
from smartrack.psql_db_services.reset_password_requests_service import (
    ResetPasswordRequestsService,
)
from smartrack.psql_db_services.users_service import UsersService
from smartrack.services.email_service import EmailService
from smartrack.utils.password_hashing import PasswordHasher

RESET_REQUEST_CODE_LENGTH = 24
RESET_REQUEST_CODE_ALPHABET = string.ascii_letters + string.digits

# Shared by every failure of the reset flow, so clients cannot tell a wrong
# code from an unknown, expired or used request.
INVALID_RESET_REQUEST_MESSAGE = (
    "The reset password request is invalid, expired or has already been used. "
    "Please, try again."
)


class AuthService:
    """Authentication and token lifecycle operations."""

    def __init__(
        self,
        app_settings: ApplicationSettings,
        *,
        users_service: UsersService,
        gateway_devices_service: GatewayDevicesService,
        refresh_tokens_service: RefreshTokensService,
        reset_password_requests_service: ResetPasswordRequestsService,
        email_service: EmailService,
        jwt_codec: JwtCodec,
        password_hasher: PasswordHasher,
    ):
        self.users = users_service
        self.gateway_devices = gateway_devices_service
        self.refresh_tokens = refresh_tokens_service
        self.reset_requests = reset_password_requests_service
        self.email = email_service
        self.jwt_codec = jwt_codec
        self.password_hasher = password_hasher

        self.max_refresh_tokens = app_settings.max_refresh_tokens
        self.refresh_token_lifetime = timedelta(days=app_settings.refresh_token_days_life)
        self.reset_request_validity_hours = (
            app_settings.reset_password_request_validity_hours
        )
        self.frontend_reset_password_link = app_settings.frontend_reset_password_link

    # ========================================================================
    # HASHING (CPU bound, kept off the event loop)
    # ========================================================================

    async def _hash(self, plaintext: str) -> str:
        return await asyncio.to_thread(self.password_hasher.hash_password, plaintext)

    async def _verify(self, plaintext: str, digest: str) -> bool:
        return await asyncio.to_thread(
            self.password_hasher.verify_password, plaintext, digest
        )

    # ========================================================================
    # USER SESSIONS
    # ========================================================================

    async def create_refresh_token(self, user: UserRecord) -> RefreshTokenGrant:
        """
        Issue a new refresh token, record it in the ledger and revoke the
        user's oldest tokens beyond the allowed number of sessions.

        The pruning is not atomic with the insert but never touches the token
        issued by this call.
        """
        valid_until = datetime.now(timezone.utc) + self.refresh_token_lifetime
        jti = uuid.uuid4().hex

        token = self.jwt_codec.issue_user_refresh_token(user.id, jti, valid_until)
        record = await self.refresh_tokens.add_refresh_token(user.id, jti, valid_until)

        tokens = await self.refresh_tokens.get_users_non_revoked_tokens(user.id)
        ids_to_revoke = [
            t.id for t in tokens[self.max_refresh_tokens :] if t.id != record.id
        ]
        if ids_to_revoke:
            await self.refresh_tokens.revoke_tokens_by_ids(*ids_to_revoke)
            logger.info(
                f"Revoked {len(ids_to_revoke)} oldest refresh token(s) of user {user.id}"
            )

        return RefreshTokenGrant(jwt=token, valid_until=valid_until)

    async def _issue_token_pair(self, user: UserRecord) -> TokenPair:
        return TokenPair(
            access=self.jwt_codec.issue_user_access_token(user.id, user.role),
            refresh=await self.create_refresh_token(user),
        )

    async def login(self, email: str, password: str) -> TokenPair:
        """
        Log in a user by their credentials.

        Raises:
            InvalidCredentials: Unknown or deactivated user, or wrong password
            PasswordNotSet: The user has not set their initial password yet
        """
        user = (
            await self.users.get_user_by_email(email) if email.strip() else None
        )

        if user is None or user.is_deleted:
            logger.warning("Login failed: unknown or deactivated account")
            raise InvalidCredentials()
        if not user.has_password:
            logger.warning(f"Login refused for user {user.id}: password not set")
            raise PasswordNotSet()

        if not await self._verify(password, user.password_hash):
            logger.warning(f"Login failed for user {user.id}: wrong password")
            raise InvalidCredentials()

        pair = await self._issue_token_pair(user)
        logger.info(f"User {user.id} logged in")
        return pair

    async def refresh_auth(self, refresh_token_jwt: str) -> TokenPair:
        """
        Exchange a refresh token for a new access and refresh token pair.
        The presented refresh token is revoked and cannot be used again.

        Raises:
            Expired: The token is invalid, expired, revoked or was rotated
                concurrently
            InvalidCredentials: The token's user no longer exists or is deactivated
        """
        try:
            verified = self.jwt_codec.verify_user_refresh_token(refresh_token_jwt)
        except InvalidTokenError:
            raise Expired()

        refresh_token = await self.refresh_tokens.get_valid_refresh_token_by_jti(
            verified.user_id, verified.jti
        )
        if refresh_token is None or not refresh_token.is_usable():
            logger.warning(
                f"Refresh refused for user {verified.user_id}: token revoked or expired"
            )
            raise Expired()

        user = await self.users.get_user_by_id(verified.user_id)
        if user is None or user.is_deleted:
            raise InvalidCredentials(
                "The provided refresh token no longer authenticates any existing user."
            )

        if await self.refresh_tokens.revoke_tokens_by_ids(refresh_token.id) == 0:
            logger.warning(
                f"Refresh refused for user {user.id}: token already rotated"
            )
            raise Expired()

        pair = await self._issue_token_pair(user)
        logger.info(f"Refresh token rotated for user {user.id}")
        return pair

    async def invalidate_token(self, refresh_token_jwt: str) -> None:
        """
        Revoke a refresh token (logout). Invalid tokens are ignored, as they
        cannot be used anyway.
        """
        try:
            verified = self.jwt_codec.verify_user_refresh_token(refresh_token_jwt)
        except InvalidTokenError:
            return

        await self.refresh_tokens.revoke_tokens_by_jti(verified.jti)
        logger.info(f"User {verified.user_id} logged out")

    async def get_user_identity(self, user_id: int) -> UserRecord:
        """
        Load the profile of the authenticated user.

        Does not check whether the caller may see the user; use it for the
        caller's own profile only.

        Raises:
            InvalidCredentials: The user does not exist anymore
        """
        user = await self.users.get_user_by_id(user_id)
        if user is None:
            raise InvalidCredentials(
                "The provided access token no longer authenticates any existing user."
            )
        return user

    # ========================================================================
    # DEVICES
    # ========================================================================

    async def auth_device(self, serial_number: str, device_secret: str) -> str:
        """
        Authenticate an IoT gateway. Devices get a short-lived access token
        only; they re-authenticate instead of refreshing.

        Raises:
            InvalidDeviceCredentials: No gateway with the serial number
            InvalidCredentials: Wrong device secret
        """
        device = (
            await self.gateway_devices.get_gateway_device_by_serial(serial_number)
            if serial_number.strip()
            else None
        )
        if device is None:
            logger.warning("Device login failed: unknown serial number")
            raise InvalidDeviceCredentials()

        if not await self._verify(device_secret, device.device_secret):
            logger.warning(f"Device login failed for device {device.id}: wrong secret")
            raise InvalidCredentials()

        await self.gateway_devices.mark_connected(device.id)
        logger.info(f"Device {device.id} authenticated")
        return self.jwt_codec.issue_device_access_token(device.id)

    # ========================================================================
    # RESET PASSWORD
    # ========================================================================

    def generate_reset_password_link(
        self, request_id: int, code: str, is_initial_password_set: bool = False
    ) -> str:
        """Link to the frontend page where the new password is set."""
        query = {"reqId": request_id, "reqVerify": code}
        if is_initial_password_set:
            query["initialPasswordSet"] = "true"
        return f"{self.frontend_reset_password_link}?{urlencode(query)}"

    async def create_reset_password_request(
        self, email: str, initial_request: bool = False
    ) -> Tuple[ResetPasswordRequestRecord, str]:
        """
        Create a reset password request and, unless it is an initial invite,
        email the reset link to the user.

        Args:
            email: Email of the user
            initial_request: Create a non-expiring request without sending the
                reset email. The caller sends the invite email instead.

        Returns:
            The stored request and the plaintext security code

        Raises:
            NotFound: No user has the email. The HTTP layer hides this error.
            EmailDeliveryError: The reset email could not be sent
        """
        user = await self.users.get_user_by_email(email)
        if user is None:
            raise NotFound(
                "The user to create the reset password request for does not exist.",
                entity="user",
            )

        code = "".join(
            secrets.choice(RESET_REQUEST_CODE_ALPHABET)
            for _ in range(RESET_REQUEST_CODE_LENGTH)
        )
        valid_until: Optional[datetime] = None
        if not initial_request:
            valid_until = datetime.now(timezone.utc) + timedelta(
                hours=self.reset_request_validity_hours
            )

        request = await self.reset_requests.insert_reset_password_request(
            user.id, await self._hash(code), valid_until
        )
        logger.info(
            f"Reset password request {request.id} created for user {user.id} "
            f"(initial={initial_request})"
        )

        if not initial_request:
            await self.email.send_reset_password_email(
                user.email,
                name=user.name,
                link=self.generate_reset_password_link(request.id, code),
                expiry_hours=self.reset_request_validity_hours,
            )

        return request, code

    async def send_initial_password_invite(
        self, user: UserRecord
    ) -> ResetPasswordRequestRecord:
        """
        Invite a user without a password to set one. Earlier outstanding
        requests of the user are disabled first.
        """
        await self.reset_requests.disable_users_reset_password_requests(user.id)
        request, code = await self.create_reset_password_request(
            user.email, initial_request=True
        )
        link = self.generate_reset_password_link(
            request.id, code, is_initial_password_set=True
        )

        if user.role == UserRole.SYS_ADMIN:
            await self.email.send_general_invite_email(user.email, name=user.name, link=link)
        else:
            await self.email.send_organization_invite_email(
                user.email,
                name=user.name,
                link=link,
                organization_name=user.organization_name or "",
            )
        return request

    async def set_new_user_password(
        self, request_id: int, code: str, new_password: str
    ) -> None:
        """
        Set a new password using a reset password request. The request is
        consumed, along with every other outstanding request of the user.

        Raises:
            BadRequest: The request does not exist, is used or expired, or the
                code does not match. The cases are indistinguishable.
        """
        request = await self.reset_requests.find_valid_reset_password_request_by_id(
            request_id
        )
        if request is None or not request.is_consumable():
            logger.warning(f"Reset password request {request_id} is not usable")
            raise BadRequest(INVALID_RESET_REQUEST_MESSAGE)

        if not await self._verify(code, request.reset_request_code_hash):
            logger.warning(f"Wrong code for reset password request {request_id}")
            raise BadRequest(INVALID_RESET_REQUEST_MESSAGE)

        password_hash = await self._hash(new_password)

        consumed = await self.reset_requests.complete_password_reset(
            request.id, request.user_id, password_hash
        )
        if not consumed:
            logger.warning(f"Reset password request {request_id} was used concurrently")
            raise BadRequest(INVALID_RESET_REQUEST_MESSAGE)
        logger.info(f"New password set for user {request.user_id}")
