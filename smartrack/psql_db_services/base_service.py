"""
Base Database Service
--------------------
Base class for all database services with shared session management,
error handling and validation helpers.

This base class provides:
- SQLAlchemy session management
- Transaction handling with automatic rollback
- Consistent error handling and logging
- Validation helpers
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from smartrack.core.database_connection import DatabaseManager


class BaseDatabaseService:
    """
    Base class for all database service classes.

    Provides shared functionality for database operations including:
    - SQLAlchemy session management
    - Transaction handling with commit/rollback
    - Error handling and logging
    - Common validation utilities
    """

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        """
        Initialize the database service with a database manager.

        Args:
            database_manager: Optional DatabaseManager instance. If not provided,
                            uses the singleton instance for connection pooling.
        """
        self.database_manager = database_manager or DatabaseManager()
        self._service_name = self.__class__.__name__

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a SQLAlchemy session with automatic commit/rollback.

        Yields:
            AsyncSession: SQLAlchemy session
        """
        async with self.database_manager.get_session() as session:
            yield session

    async def fetch_all(
        self, sql_query: str, query_parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute a query and return every row as a dictionary.

        Args:
            sql_query: SQL query string to execute
            query_parameters: Optional dictionary of query parameters

        Returns:
            List of result dictionaries, empty when nothing matched
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(text(sql_query), query_parameters or {})
                rows = result.mappings().all()
                return [dict(row) for row in rows] if rows else []
        except Exception as error:
            logger.error(f"{self._service_name}: Error executing query: {error}")
            raise

    async def fetch_one(
        self, sql_query: str, query_parameters: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Execute a query expected to return at most one row.

        Returns:
            The row as a dictionary, or None when nothing matched
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(text(sql_query), query_parameters or {})
                row = result.mappings().one_or_none()
                return dict(row) if row else None
        except Exception as error:
            logger.error(f"{self._service_name}: Error executing query: {error}")
            raise

    async def execute_update(
        self, sql_query: str, query_parameters: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Execute a data modifying statement.

        Returns:
            Number of rows affected
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(text(sql_query), query_parameters or {})
                return result.rowcount
        except Exception as error:
            logger.error(f"{self._service_name}: Error executing update: {error}")
            raise

    # ========================================================================
    # VALIDATION UTILITIES
    # ========================================================================

    def validate_positive_integer(
        self, integer_value: int, parameter_name: str = "value"
    ) -> None:
        """
        Validate that an integer is positive.

        Raises:
            ValueError: If integer is not positive
        """
        if not isinstance(integer_value, int) or isinstance(integer_value, bool):
            raise ValueError(f"{parameter_name} must be an integer")
        if integer_value < 1:
            raise ValueError(f"{parameter_name} must be positive, got {integer_value}")

    def validate_string_not_empty(
        self, string_value: str, parameter_name: str = "string"
    ) -> None:
        """
        Validate that a string is not None or empty.

        Raises:
            ValueError: If string is None or empty
        """
        if not string_value or not isinstance(string_value, str):
            raise ValueError(f"{parameter_name} must be a non-empty string")
        if not string_value.strip():
            raise ValueError(f"{parameter_name} cannot be only whitespace")

    def log_operation(
        self,
        operation_type: str,
        entity_identifier: Any,
        success: bool = True,
        additional_context: Optional[str] = None,
    ) -> None:
        """
        Log database operations for monitoring and debugging.

        Args:
            operation_type: Type of operation (e.g., "CREATE", "UPDATE", "REVOKE")
            entity_identifier: Identifier of the entity being operated on
            success: Whether the operation was successful
            additional_context: Optional additional context information
        """
        log_level = "info" if success else "error"
        status = "succeeded" if success else "failed"

        message = (
            f"{self._service_name}: {operation_type} operation {status} "
            f"for entity: {entity_identifier}"
        )

        if additional_context:
            message += f" - {additional_context}"

        getattr(logger, log_level)(message)
