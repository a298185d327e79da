"""
Shared fixtures for the PostgreSQL service tests.
The database manager is mocked; statements sent to the session are recorded
so tests can check the SQL and its parameters.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from smartrack.core.database_connection import DatabaseManager


@pytest.fixture
def mock_db_manager():
    """Mock database manager for testing."""
    return AsyncMock(spec=DatabaseManager)


@pytest.fixture
def setup_mock_sqlalchemy_session(mock_db_manager):
    """
    Set up a mock SQLAlchemy session returning the given data.

    A dict is returned as the single row, a list as all rows and None as
    "not found". rowcount is reported for data modifying statements.
    """

    def _setup(mock_result_data=None, rowcount=1):
        mock_result = MagicMock()
        mock_result.mappings.return_value = mock_result

        if isinstance(mock_result_data, list):
            mock_result.all.return_value = mock_result_data
            mock_result.one_or_none.return_value = None
        else:
            mock_result.one_or_none.return_value = mock_result_data
            mock_result.all.return_value = []

        mock_result.rowcount = rowcount

        mock_session = MagicMock()
        mock_session.execute = AsyncMock(return_value=mock_result)
        mock_session.commit = AsyncMock()
        mock_session.rollback = AsyncMock()

        @asynccontextmanager
        async def mock_get_session_cm():
            try:
                yield mock_session
            except Exception:
                await mock_session.rollback()
                raise
            else:
                await mock_session.commit()

        mock_db_manager.get_session = MagicMock(
            side_effect=lambda: mock_get_session_cm()
        )
        return mock_session, mock_result

    return _setup


@pytest.fixture
def executed_statement():
    """Return the SQL text, whitespace collapsed, and parameters of an execute call."""

    def _statement(mock_session, call_index=0):
        args = mock_session.execute.call_args_list[call_index].args
        return " ".join(str(args[0]).split()), args[1]

    return _statement
