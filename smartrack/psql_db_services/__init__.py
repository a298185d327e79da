"""
Database Services Package
-------------------------
PostgreSQL stores of the auth subsystem.

This package provides:
- Base service class with session and transaction management
- Users and gateway devices lookups (credential store)
- Refresh token ledger with compare-and-set revocation
- Reset password requests store
"""

from smartrack.psql_db_services.base_service import BaseDatabaseService
from smartrack.psql_db_services.gateway_devices_service import GatewayDevicesService
from smartrack.psql_db_services.refresh_tokens_service import RefreshTokensService
from smartrack.psql_db_services.reset_password_requests_service import (
    ResetPasswordRequestsService,
)
from smartrack.psql_db_services.users_service import UsersService

__all__ = [
    "BaseDatabaseService",
    "UsersService",
    "GatewayDevicesService",
    "RefreshTokensService",
    "ResetPasswordRequestsService",
]
