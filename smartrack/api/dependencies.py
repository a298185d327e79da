"""
Service Dependencies
--------------------
Composition root of the API. Builds the long-lived services once from the
application settings and hands them to the routes through ``Depends``.
Tests swap them with ``app.dependency_overrides``.
"""

from functools import lru_cache

from smartrack.auth.auth_service import AuthService
from smartrack.auth.jwt_codec import JwtCodec
from smartrack.core.config_manager import ApplicationSettings, settings
from smartrack.core.database_connection import db_manager
from smartrack.psql_db_services.gateway_devices_service import GatewayDevicesService
from smartrack.psql_db_services.refresh_tokens_service import RefreshTokensService
from smartrack.psql_db_services.reset_password_requests_service import (
    ResetPasswordRequestsService,
)
from smartrack.psql_db_services.users_service import UsersService
from smartrack.services.email_service import EmailService
from smartrack.utils.password_hashing import PasswordHasher


def get_settings() -> ApplicationSettings:
    return settings


@lru_cache(maxsize=1)
def get_jwt_codec() -> JwtCodec:
    return JwtCodec(get_settings())


@lru_cache(maxsize=1)
def get_email_service() -> EmailService:
    return EmailService.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    app_settings = get_settings()
    return AuthService(
        app_settings,
        users_service=UsersService(db_manager),
        gateway_devices_service=GatewayDevicesService(db_manager),
        refresh_tokens_service=RefreshTokensService(db_manager),
        reset_password_requests_service=ResetPasswordRequestsService(db_manager),
        email_service=get_email_service(),
        jwt_codec=get_jwt_codec(),
        password_hasher=PasswordHasher(rounds=app_settings.bcrypt_rounds),
    )
