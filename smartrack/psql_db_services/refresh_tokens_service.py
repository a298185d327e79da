"""
PostgreSQL Operations for the Refresh Token Ledger
--------------------------------------------------
Refresh tokens are never deleted. They are revoked by setting revoked_at,
which only ever happens on rows where it is still NULL. This makes revocation
idempotent and lets callers use the affected row count as a compare-and-set
result: a rowcount of 0 means somebody else revoked the token first.
"""

from datetime import datetime
from typing import List, Optional

from smartrack.core.database_connection import DatabaseManager
from smartrack.models.db_models import RefreshTokenRecord
from smartrack.psql_db_services.base_service import BaseDatabaseService

_TOKEN_COLUMNS = "id, user_id, jti, created_at, valid_until, revoked_at"


class RefreshTokensService(BaseDatabaseService):
    """Ledger of issued refresh tokens."""

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        super().__init__(database_manager)

    async def add_refresh_token(
        self, user_id: int, jti: str, valid_until: datetime
    ) -> RefreshTokenRecord:
        """
        Save a newly issued refresh token.

        Args:
            user_id: Owner of the token. Expected to be an existing user.
            jti: The JWT ID embedded in the token
            valid_until: Expiration of the token

        Returns:
            The inserted ledger row
        """
        self.validate_positive_integer(user_id, "user_id")
        self.validate_string_not_empty(jti, "jti")

        row = await self.fetch_one(
            f"""
            INSERT INTO user_refresh_token (user_id, jti, valid_until)
            VALUES (:user_id, :jti, :valid_until)
            RETURNING {_TOKEN_COLUMNS}
            """,
            {"user_id": user_id, "jti": jti, "valid_until": valid_until},
        )
        return RefreshTokenRecord(**row)

    async def get_valid_refresh_token_by_jti(
        self, user_id: int, jti: str
    ) -> Optional[RefreshTokenRecord]:
        """
        Retrieve a token by jti and owner, only while it is usable
        (not revoked and not past its validity).
        """
        row = await self.fetch_one(
            f"""
            SELECT {_TOKEN_COLUMNS}
            FROM user_refresh_token
            WHERE jti = :jti
              AND user_id = :user_id
              AND revoked_at IS NULL
              AND valid_until > NOW()
            """,
            {"user_id": user_id, "jti": jti},
        )
        return RefreshTokenRecord(**row) if row else None

    async def get_users_non_revoked_tokens(
        self, user_id: int
    ) -> List[RefreshTokenRecord]:
        """Get the user's usable refresh tokens, newest first."""
        rows = await self.fetch_all(
            f"""
            SELECT {_TOKEN_COLUMNS}
            FROM user_refresh_token
            WHERE user_id = :user_id
              AND revoked_at IS NULL
              AND valid_until > NOW()
            ORDER BY created_at DESC, id DESC
            """,
            {"user_id": user_id},
        )
        return [RefreshTokenRecord(**row) for row in rows]

    async def revoke_tokens_by_ids(self, *ids: int) -> int:
        """
        Revoke refresh tokens by their IDs.

        Returns:
            Number of tokens this call revoked. Already revoked tokens are skipped.
        """
        if not ids:
            return 0

        revoked = await self.execute_update(
            """
            UPDATE user_refresh_token
            SET revoked_at = NOW()
            WHERE id = ANY(:ids) AND revoked_at IS NULL
            """,
            {"ids": list(ids)},
        )
        self.log_operation("REVOKE", list(ids), additional_context=f"revoked={revoked}")
        return revoked

    async def revoke_tokens_by_jti(self, *jtis: str) -> int:
        """
        Revoke refresh tokens by their JWT IDs.

        Returns:
            Number of tokens this call revoked. Already revoked tokens are skipped.
        """
        if not jtis:
            return 0

        return await self.execute_update(
            """
            UPDATE user_refresh_token
            SET revoked_at = NOW()
            WHERE jti = ANY(:jtis) AND revoked_at IS NULL
            """,
            {"jtis": list(jtis)},
        )
