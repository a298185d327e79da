"""
Unit Tests for RefreshTokensService
===================================
Async unit tests for the refresh token ledger: inserts, usable token
lookups and conditional revocation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from smartrack.psql_db_services.refresh_tokens_service import RefreshTokensService

NOW = datetime(2025, 10, 13, 10, 30, tzinfo=timezone.utc)


def _token_row(token_id, jti="jti-1", revoked_at=None):
    return {
        "id": token_id,
        "user_id": 7,
        "jti": jti,
        "created_at": NOW,
        "valid_until": NOW + timedelta(days=7),
        "revoked_at": revoked_at,
    }


@pytest.fixture
def refresh_tokens_service(mock_db_manager):
    return RefreshTokensService(database_manager=mock_db_manager)


class TestAddRefreshToken:
    """Test saving issued tokens."""

    @pytest.mark.asyncio
    async def test_add_refresh_token(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session, executed_statement
    ):
        mock_session, _ = setup_mock_sqlalchemy_session(_token_row(1))
        valid_until = NOW + timedelta(days=7)

        token = await refresh_tokens_service.add_refresh_token(7, "jti-1", valid_until)

        assert token.id == 1
        assert token.revoked_at is None
        sql, params = executed_statement(mock_session)
        assert sql.startswith("INSERT INTO user_refresh_token")
        assert "RETURNING" in sql
        assert params == {"user_id": 7, "jti": "jti-1", "valid_until": valid_until}

    @pytest.mark.asyncio
    async def test_add_refresh_token_empty_jti(self, refresh_tokens_service):
        with pytest.raises(ValueError, match="jti"):
            await refresh_tokens_service.add_refresh_token(7, "", NOW)


class TestUsableTokens:
    """Test lookups restricted to usable tokens."""

    @pytest.mark.asyncio
    async def test_get_valid_refresh_token_by_jti(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session, executed_statement
    ):
        mock_session, _ = setup_mock_sqlalchemy_session(_token_row(3, jti="abc"))

        token = await refresh_tokens_service.get_valid_refresh_token_by_jti(7, "abc")

        assert token.id == 3
        sql, params = executed_statement(mock_session)
        assert "revoked_at IS NULL" in sql
        assert "valid_until > NOW()" in sql
        assert params == {"user_id": 7, "jti": "abc"}

    @pytest.mark.asyncio
    async def test_get_valid_refresh_token_not_found(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session
    ):
        setup_mock_sqlalchemy_session(None)

        assert (
            await refresh_tokens_service.get_valid_refresh_token_by_jti(7, "abc")
            is None
        )

    @pytest.mark.asyncio
    async def test_get_users_non_revoked_tokens_newest_first(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session, executed_statement
    ):
        mock_session, _ = setup_mock_sqlalchemy_session(
            [_token_row(5, "e"), _token_row(4, "d")]
        )

        tokens = await refresh_tokens_service.get_users_non_revoked_tokens(7)

        assert [token.id for token in tokens] == [5, 4]
        sql, _ = executed_statement(mock_session)
        assert "ORDER BY created_at DESC, id DESC" in sql

    @pytest.mark.asyncio
    async def test_get_users_non_revoked_tokens_empty(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session
    ):
        setup_mock_sqlalchemy_session([])

        assert await refresh_tokens_service.get_users_non_revoked_tokens(7) == []


class TestRevocation:
    """Test that revocation only touches tokens that are not revoked yet."""

    @pytest.mark.asyncio
    async def test_revoke_tokens_by_ids(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session, executed_statement
    ):
        mock_session, _ = setup_mock_sqlalchemy_session(rowcount=2)

        revoked = await refresh_tokens_service.revoke_tokens_by_ids(1, 2, 3)

        assert revoked == 2
        sql, params = executed_statement(mock_session)
        assert "WHERE id = ANY(:ids) AND revoked_at IS NULL" in sql
        assert params == {"ids": [1, 2, 3]}

    @pytest.mark.asyncio
    async def test_revoke_already_revoked_token(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session
    ):
        setup_mock_sqlalchemy_session(rowcount=0)

        assert await refresh_tokens_service.revoke_tokens_by_ids(1) == 0

    @pytest.mark.asyncio
    async def test_revoke_no_ids(self, refresh_tokens_service, mock_db_manager):
        assert await refresh_tokens_service.revoke_tokens_by_ids() == 0
        assert await refresh_tokens_service.revoke_tokens_by_jti() == 0
        mock_db_manager.get_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_revoke_tokens_by_jti(
        self, refresh_tokens_service, setup_mock_sqlalchemy_session, executed_statement
    ):
        mock_session, _ = setup_mock_sqlalchemy_session(rowcount=1)

        revoked = await refresh_tokens_service.revoke_tokens_by_jti("abc")

        assert revoked == 1
        sql, params = executed_statement(mock_session)
        assert "WHERE jti = ANY(:jtis) AND revoked_at IS NULL" in sql
        assert params == {"jtis": ["abc"]}
