"""
JWT Codec
---------
Signs and verifies the compact tokens used by SmartRack.

Three token kinds exist, all HS256 signed with the same secret:

- user access tokens: audience = app, role under the "sub:role" claim, 10 minutes
- user refresh tokens: audience = app, carry a jti, expire with their ledger row
- device access tokens: audience = device, no custom claims, 5 minutes

Audiences are always verified, so a device token is never accepted where a
user token is expected and vice versa. Every verification failure surfaces as
InvalidTokenError; callers decide what the failure means for them.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from loguru import logger

from smartrack.core.config_manager import ApplicationSettings
from smartrack.core.errors import InvalidTokenError
from smartrack.models.auth_models import VerifiedRefreshToken, VerifiedUserToken
from smartrack.models.db_models import UserRole

JWT_CLAIM_ROLE = "sub:role"


class JwtCodec:
    """Issues and verifies user, refresh and device tokens."""

    def __init__(self, app_settings: ApplicationSettings):
        self._secret = app_settings.jwt_secret_key
        self._algorithm = app_settings.jwt_algorithm
        self.issuer = app_settings.jwt_issuer
        self.app_audience = app_settings.jwt_app_audience
        self.device_audience = app_settings.jwt_device_audience
        self.access_token_lifetime = timedelta(
            minutes=app_settings.jwt_access_token_expire_minutes
        )
        self.device_token_lifetime = timedelta(
            minutes=app_settings.jwt_device_token_expire_minutes
        )

    # ========================================================================
    # ISSUING
    # ========================================================================

    def _encode(
        self,
        subject: int,
        audience: str,
        expire_at: datetime,
        extra_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        issued_at = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(subject),
            "aud": audience,
            "iss": self.issuer,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire_at.timestamp()),
        }
        if extra_claims:
            payload.update(extra_claims)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_user_access_token(self, user_id: int, role: UserRole) -> str:
        """
        Create a short-lived access token for a user.

        Args:
            user_id: ID of the user
            role: Role embedded in the token

        Returns:
            Signed JWT access token
        """
        expire_at = datetime.now(timezone.utc) + self.access_token_lifetime
        token = self._encode(
            user_id,
            self.app_audience,
            expire_at,
            {JWT_CLAIM_ROLE: UserRole(role).value},
        )
        logger.debug(f"Access token issued for user {user_id}")
        return token

    def issue_user_refresh_token(
        self, user_id: int, jti: str, valid_until: datetime
    ) -> str:
        """
        Create a refresh token identified by its jti.

        Args:
            user_id: ID of the user
            jti: Unique token ID, the lookup key in the refresh token ledger
            valid_until: Expiration, identical to the ledger row's valid_until

        Returns:
            Signed JWT refresh token
        """
        return self._encode(user_id, self.app_audience, valid_until, {"jti": jti})

    def issue_device_access_token(self, device_id: int) -> str:
        """Create a short-lived access token for an IoT gateway."""
        expire_at = datetime.now(timezone.utc) + self.device_token_lifetime
        token = self._encode(device_id, self.device_audience, expire_at)
        logger.debug(f"Device access token issued for device {device_id}")
        return token

    # ========================================================================
    # VERIFICATION
    # ========================================================================

    def _decode(self, token: str, audience: str, required: tuple) -> Dict[str, Any]:
        if not isinstance(token, str) or not token:
            raise InvalidTokenError("Token must be a non-empty string")

        options = {"require_exp": True, "require_iss": True, "require_sub": True}
        for claim in required:
            options[f"require_{claim}"] = True

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=audience,
                issuer=self.issuer,
                options=options,
            )
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        if not isinstance(payload, dict):
            raise InvalidTokenError("Token payload is not an object")
        return payload

    @staticmethod
    def _numeric_subject(payload: Dict[str, Any]) -> int:
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise InvalidTokenError("Token subject is not numeric")
        return int(subject)

    def verify_user_access_token(self, token: str) -> VerifiedUserToken:
        """
        Verify a user access token.

        Raises:
            InvalidTokenError: Signature, expiry, issuer, audience, role claim
                or subject check failed
        """
        payload = self._decode(token, self.app_audience, ("aud",))

        if JWT_CLAIM_ROLE not in payload:
            raise InvalidTokenError("Token missing role claim")
        try:
            role = UserRole(payload[JWT_CLAIM_ROLE])
        except ValueError as e:
            raise InvalidTokenError("Token carries an unknown role") from e

        return VerifiedUserToken(user_id=self._numeric_subject(payload), role=role)

    def verify_user_refresh_token(self, token: str) -> VerifiedRefreshToken:
        """
        Verify a refresh token.

        Raises:
            InvalidTokenError: Signature, expiry, issuer, audience, jti
                or subject check failed
        """
        payload = self._decode(token, self.app_audience, ("aud", "jti"))

        jti = payload.get("jti")
        if not isinstance(jti, str) or not jti:
            raise InvalidTokenError("Token missing jti")

        return VerifiedRefreshToken(user_id=self._numeric_subject(payload), jti=jti)

    def verify_device_access_token(self, token: str) -> int:
        """
        Verify a device access token and return the device ID.

        Raises:
            InvalidTokenError: Signature, expiry, issuer, audience
                or subject check failed
        """
        payload = self._decode(token, self.device_audience, ("aud",))
        return self._numeric_subject(payload)
