"""
Authentication Endpoints
------------------------
Login, refresh token rotation, logout, device login and the reset password
flow.

The refresh token only ever travels in the HttpOnly ``refreshAuth`` cookie;
response bodies carry the access token only.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response, status
from loguru import logger

from smartrack.api.dependencies import get_auth_service, get_settings
from smartrack.auth.auth_dependencies import require_any_user
from smartrack.auth.auth_service import AuthService
from smartrack.core.config_manager import ApplicationSettings
from smartrack.core.errors import NotFound, Unauthenticated
from smartrack.models.auth_models import (
    AuthResponse,
    DeviceLoginRequest,
    LoginRequest,
    NewPasswordRequest,
    PasswordResetRequest,
    RefreshTokenGrant,
    UserIdentityResponse,
    VerifiedUserToken,
)
from smartrack.models.response_models import ErrorResponse

# ============================================================================
# ROUTER INITIALIZATION
# ============================================================================

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

_UNAUTHENTICATED_RESPONSE = {401: {"model": ErrorResponse}}


# ============================================================================
# REFRESH COOKIE
# ============================================================================


def _set_refresh_cookie(
    response: Response, grant: RefreshTokenGrant, app_settings: ApplicationSettings
) -> None:
    seconds_left = (grant.valid_until - datetime.now(timezone.utc)).total_seconds()
    response.set_cookie(
        key=app_settings.refresh_cookie_name,
        value=grant.jwt,
        max_age=max(0, int(seconds_left)),
        expires=grant.valid_until,
        path="/",
        secure=app_settings.refresh_cookie_secure,
        httponly=True,
        samesite="strict",
    )


def _delete_refresh_cookie(response: Response, app_settings: ApplicationSettings) -> None:
    response.delete_cookie(
        key=app_settings.refresh_cookie_name,
        path="/",
        secure=app_settings.refresh_cookie_secure,
        httponly=True,
        samesite="strict",
    )


# ============================================================================
# USER SESSIONS
# ============================================================================


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in with email and password",
    responses={400: {"model": ErrorResponse}, **_UNAUTHENTICATED_RESPONSE},
)
async def login(
    request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    app_settings: ApplicationSettings = Depends(get_settings),
):
    """
    Authenticate a user. Returns the access token and sets the refresh
    token cookie.
    """
    pair = await auth_service.login(request.email, request.password)
    _set_refresh_cookie(response, pair.refresh, app_settings)
    return AuthResponse(access=pair.access)


@router.get(
    "/token-refresh",
    response_model=AuthResponse,
    summary="Rotate the refresh token cookie and get a new access token",
    responses=_UNAUTHENTICATED_RESPONSE,
)
async def token_refresh(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    app_settings: ApplicationSettings = Depends(get_settings),
):
    """
    Exchange the refresh token cookie for a new access token. The cookie is
    replaced by a new refresh token; the old one cannot be used again.
    """
    refresh_token = request.cookies.get(app_settings.refresh_cookie_name)
    if not refresh_token:
        raise Unauthenticated(
            "The refresh token cookie is missing. Please, log-in again."
        )

    pair = await auth_service.refresh_auth(refresh_token)
    _set_refresh_cookie(response, pair.refresh, app_settings)
    return AuthResponse(access=pair.access)


@router.delete(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Log out and revoke the refresh token",
)
async def logout(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    app_settings: ApplicationSettings = Depends(get_settings),
):
    """Revoke the refresh token cookie, if any, and delete it. Always succeeds."""
    refresh_token = request.cookies.get(app_settings.refresh_cookie_name)
    if refresh_token:
        await auth_service.invalidate_token(refresh_token)

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _delete_refresh_cookie(response, app_settings)
    return response


@router.get(
    "/identity",
    response_model=UserIdentityResponse,
    summary="Get the profile of the logged in user",
    responses=_UNAUTHENTICATED_RESPONSE,
)
async def identity(
    caller: VerifiedUserToken = Depends(require_any_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.get_user_identity(caller.user_id)
    return UserIdentityResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        organization_id=user.organization_id,
        organization_name=user.organization_name,
    )


# ============================================================================
# DEVICES
# ============================================================================


@router.post(
    "/device-login",
    response_model=AuthResponse,
    summary="Authenticate an IoT gateway device",
    responses=_UNAUTHENTICATED_RESPONSE,
)
async def device_login(
    request: DeviceLoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Devices receive a short-lived access token and no refresh token."""
    access = await auth_service.auth_device(request.serial_number, request.device_secret)
    return AuthResponse(access=access)


# ============================================================================
# RESET PASSWORD
# ============================================================================


@router.post(
    "/reset-password",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Request a reset password email",
)
async def reset_password(
    request: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Send a reset password link to the email. The response does not reveal
    whether an account with the email exists.
    """
    try:
        await auth_service.create_reset_password_request(request.email)
    except NotFound as e:
        if e.entity != "user":
            raise
        logger.info("Reset password requested for an unknown email")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/new-password/{reset_request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Set a new password using a reset password request",
    responses={400: {"model": ErrorResponse}},
)
async def new_password(
    reset_request_id: int,
    request: NewPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.set_new_user_password(
        reset_request_id, request.code, request.password
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
