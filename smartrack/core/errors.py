"""
Domain Errors
-------------
Error taxonomy shared by the auth services and the HTTP layer.

Every error carries a stable machine readable ``code`` and the HTTP status
it is rendered with. Services raise them unchanged; the exception handlers in
``smartrack.api.error_handling`` turn them into ``{"error": {code, message}}``.
"""

from typing import Optional


class SmartRackError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 400
    code: str = "bad_request"
    default_message: str = "Invalid request. Please follow the endpoint's documentation."

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)


# ============================================================================
# 401 - AUTHENTICATION
# ============================================================================


class Unauthenticated(SmartRackError):
    """The caller must be authenticated to use the endpoint."""

    status_code = 401
    code = "unauthenticated"
    default_message = (
        "This action cannot be used without authentication. "
        "Please, authenticate with your JWT token."
    )


class InvalidCredentials(Unauthenticated):
    """Wrong password or secret, or unknown principal. Always worded generically."""

    code = "unauthenticated.invalid_credentials"
    default_message = "Provided credentials are invalid."


class InvalidDeviceCredentials(Unauthenticated):
    """No gateway device is registered under the given serial number."""

    code = "unauthenticated.invalid_device_credentials"
    default_message = "Provided device credentials are invalid."


class Expired(Unauthenticated):
    """Refresh token is malformed, expired or already revoked."""

    code = "unauthenticated.expired"
    default_message = "The provided refresh token is expired. Please, log-in again."


# ============================================================================
# 400 - BAD REQUEST
# ============================================================================


class BadRequest(SmartRackError):
    """Invalid usage of an endpoint by the client."""

    status_code = 400
    code = "bad_request"


class PasswordNotSet(BadRequest):
    """The account exists but its initial password was never set."""

    code = "bad_request.password_not_set"
    default_message = (
        "Unable to log-in. User must set their initial password before logging in."
    )


# ============================================================================
# 403 / 404
# ============================================================================


class Unauthorized(SmartRackError):
    """The caller is authenticated but may not execute the action."""

    status_code = 403
    code = "forbidden"
    default_message = "You are not authorized to execute this action."

    def __init__(self, message: Optional[str] = None, action: Optional[str] = None):
        self.action = action
        super().__init__(message, code=f"forbidden.{action}" if action else None)


class NotFound(SmartRackError):
    """The requested entity does not exist."""

    status_code = 404
    code = "not_found"
    default_message = "The requested entity was not found."

    def __init__(self, message: Optional[str] = None, entity: Optional[str] = None):
        self.entity = entity
        super().__init__(message, code=f"not_found.{entity}" if entity else None)


# ============================================================================
# INTERNAL
# ============================================================================


class InvalidTokenError(Exception):
    """A JWT failed verification. Never rendered directly to clients."""


class EmailDeliveryError(Exception):
    """An outgoing email could not be delivered."""
