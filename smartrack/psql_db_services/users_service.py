"""
PostgreSQL Operations for Users
-------------------------------
Credential store lookups needed by authentication: user retrieval by ID and
by email, joined with the organization name. Password hashes are written by
the reset password flow, see ResetPasswordRequestsService.
"""

from typing import Optional

from smartrack.core.database_connection import DatabaseManager
from smartrack.models.db_models import UserRecord
from smartrack.psql_db_services.base_service import BaseDatabaseService

_USER_COLUMNS = """
    u.id, u.organization_id, o.name AS organization_name, u.role, u.email,
    u.password_hash, u.name, u.deleted_at
"""


class UsersService(BaseDatabaseService):
    """Read access to the "user" table."""

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        super().__init__(database_manager)

    async def get_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        """
        Retrieve a user by ID, including soft-deleted users.

        Args:
            user_id: ID of the user

        Returns:
            UserRecord or None when no such user exists
        """
        self.validate_positive_integer(user_id, "user_id")

        row = await self.fetch_one(
            f"""
            SELECT {_USER_COLUMNS}
            FROM "user" u
            LEFT JOIN organization o ON o.id = u.organization_id
            WHERE u.id = :user_id
            """,
            {"user_id": user_id},
        )
        return UserRecord(**row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        """
        Retrieve a user by email address, compared case-insensitively.

        Args:
            email: Email address of the user

        Returns:
            UserRecord or None when no such user exists
        """
        self.validate_string_not_empty(email, "email")

        row = await self.fetch_one(
            f"""
            SELECT {_USER_COLUMNS}
            FROM "user" u
            LEFT JOIN organization o ON o.id = u.organization_id
            WHERE lower(u.email) = lower(:email)
            """,
            {"email": email.strip()},
        )
        return UserRecord(**row) if row else None

