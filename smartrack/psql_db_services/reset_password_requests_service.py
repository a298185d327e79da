"""
PostgreSQL Operations for Reset Password Requests
-------------------------------------------------
One-shot requests allowing a user to set a new password. A request with a
NULL valid_until never expires; those are created for initial invites.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import text

from smartrack.core.database_connection import DatabaseManager
from smartrack.models.db_models import ResetPasswordRequestRecord
from smartrack.psql_db_services.base_service import BaseDatabaseService

_REQUEST_COLUMNS = "id, user_id, reset_request_code_hash, valid_until, is_used"

# Upper bound of the int4 id column
MAX_REQUEST_ID = 2**31 - 1


class ResetPasswordRequestsService(BaseDatabaseService):
    """Storage of reset password requests."""

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        super().__init__(database_manager)

    async def insert_reset_password_request(
        self,
        user_id: int,
        reset_request_code_hash: str,
        valid_until: Optional[datetime],
    ) -> ResetPasswordRequestRecord:
        """
        Insert a new reset password request.

        Args:
            user_id: Owner of the request
            reset_request_code_hash: Hash of the security code sent to the user
            valid_until: Expiration, None for a non-expiring request

        Returns:
            The inserted row
        """
        self.validate_positive_integer(user_id, "user_id")
        self.validate_string_not_empty(reset_request_code_hash, "reset_request_code_hash")

        row = await self.fetch_one(
            f"""
            INSERT INTO user_reset_password_request
                (user_id, reset_request_code_hash, valid_until)
            VALUES (:user_id, :reset_request_code_hash, :valid_until)
            RETURNING {_REQUEST_COLUMNS}
            """,
            {
                "user_id": user_id,
                "reset_request_code_hash": reset_request_code_hash,
                "valid_until": valid_until,
            },
        )
        return ResetPasswordRequestRecord(**row)

    async def find_valid_reset_password_request_by_id(
        self, request_id: int
    ) -> Optional[ResetPasswordRequestRecord]:
        """
        Find an unused request that is non-expiring or not yet expired.
        Ids outside the range of the id column match nothing.
        """
        if not 1 <= request_id <= MAX_REQUEST_ID:
            return None

        row = await self.fetch_one(
            f"""
            SELECT {_REQUEST_COLUMNS}
            FROM user_reset_password_request
            WHERE id = :request_id
              AND is_used = FALSE
              AND (valid_until IS NULL OR valid_until > NOW())
            """,
            {"request_id": request_id},
        )
        return ResetPasswordRequestRecord(**row) if row else None

    async def complete_password_reset(
        self, request_id: int, user_id: int, password_hash: str
    ) -> bool:
        """
        Consume a request and store the new password hash of its user in one
        transaction. The user's other outstanding requests are disabled as well.

        Returns:
            True if this call consumed the request, False if it was already used

        Raises:
            ValueError: If the user does not exist. Nothing is written.
        """
        self.validate_positive_integer(user_id, "user_id")
        self.validate_string_not_empty(password_hash, "password_hash")

        try:
            async with self.get_session() as session:
                consumed = await session.execute(
                    text(
                        """
                        UPDATE user_reset_password_request
                        SET is_used = TRUE
                        WHERE id = :request_id AND is_used = FALSE
                        """
                    ),
                    {"request_id": request_id},
                )
                if consumed.rowcount != 1:
                    return False

                updated = await session.execute(
                    text(
                        'UPDATE "user" SET password_hash = :password_hash '
                        "WHERE id = :user_id"
                    ),
                    {"user_id": user_id, "password_hash": password_hash},
                )
                if updated.rowcount == 0:
                    raise ValueError(f"User {user_id} does not exist")

                await session.execute(
                    text(
                        """
                        UPDATE user_reset_password_request
                        SET is_used = TRUE
                        WHERE user_id = :user_id AND is_used = FALSE
                        """
                    ),
                    {"user_id": user_id},
                )
        except Exception as error:
            logger.error(
                f"{self._service_name}: Error completing password reset: {error}"
            )
            raise

        self.log_operation(
            "RESET_PASSWORD", request_id, additional_context=f"user={user_id}"
        )
        return True

    async def disable_users_reset_password_requests(self, user_id: int) -> int:
        """
        Invalidate every outstanding request of a user.

        Returns:
            Number of requests disabled
        """
        return await self.execute_update(
            """
            UPDATE user_reset_password_request
            SET is_used = TRUE
            WHERE user_id = :user_id AND is_used = FALSE
            """,
            {"user_id": user_id},
        )
