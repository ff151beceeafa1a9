"""Generic async database utility functions for Supabase interactions."""

import logging
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import AsyncClient

from src.yourvoice.services.database.connection import get_supabase_client
from src.yourvoice.services.database.exceptions import UNIQUE_VIOLATION, ConflictError

logger = logging.getLogger(__name__)


def _raise_for_conflict(table: str, error: APIError) -> None:
    """Re-raise a PostgREST unique violation as ConflictError."""
    if error.code == UNIQUE_VIOLATION:
        logger.warning(
            f"Unique constraint violated on {table}: {error.message}",
            extra={"error_type": "unique_violation", "table": table},
        )
        raise ConflictError(table, error.message or "Duplicate record") from error


class SupabaseQueryBuilder:
    """Helper class for building and executing async Supabase queries."""

    def __init__(self, client: AsyncClient) -> None:
        """
        Initialize query builder.

        Args:
            client: Async Supabase client instance
        """
        self.client = client

    async def get_by_field(
        self, table: str, field: str, value: Any, columns: str = "*"
    ) -> dict[str, Any] | None:
        """
        Fetch a single record by field value.

        Args:
            table: Table name
            field: Field name to filter by
            value: Field value
            columns: Columns to select (default: "*")

        Returns:
            First matching record or None

        Example:
            >>> builder = await get_query_builder()
            >>> profile = await builder.get_by_field("user_profiles", "email", "sam@example.com")
        """
        response = (
            await self.client.table(table).select(columns).eq(field, value).limit(1).execute()
        )
        return response.data[0] if response.data else None

    async def insert_record(self, table: str, data: dict[str, Any]) -> dict[str, Any] | None:
        """
        Insert a single record.

        Args:
            table: Table name
            data: Record data dictionary

        Returns:
            Inserted record dictionary or None if the backend returned nothing

        Raises:
            ConflictError: If the insert violates a unique constraint
            APIError: For any other backend rejection

        Example:
            >>> builder = await get_query_builder()
            >>> profile = await builder.insert_record(
            ...     "user_profiles",
            ...     {"email": "sam@example.com", "role": "user", "session_token": token}
            ... )
        """
        try:
            response = await self.client.table(table).insert(data).execute()
        except APIError as e:
            _raise_for_conflict(table, e)
            raise
        return response.data[0] if response.data else None

    async def update_record(
        self, table: str, record_id: UUID | str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Update a record by ID.

        Args:
            table: Table name
            record_id: Record UUID or ID
            data: Fields to update

        Returns:
            Updated record dictionary or None if not found

        Raises:
            ConflictError: If the update violates a unique constraint
        """
        try:
            response = (
                await self.client.table(table).update(data).eq("id", str(record_id)).execute()
            )
        except APIError as e:
            _raise_for_conflict(table, e)
            raise
        return response.data[0] if response.data else None

    async def update_by_filter(
        self, table: str, filters: dict[str, Any], data: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """
        Update records matching filters.

        Args:
            table: Table name
            filters: Dictionary of field:value pairs for filtering
            data: Fields to update

        Returns:
            List of updated record dictionaries
        """
        query = self.client.table(table).update(data)

        for field, value in filters.items():
            query = query.eq(field, value)

        response = await query.execute()
        return response.data


async def get_query_builder(client: AsyncClient | None = None) -> SupabaseQueryBuilder:
    """
    Get instance of SupabaseQueryBuilder.

    Args:
        client: Optional async Supabase client (uses the cached anon-key client if None)

    Returns:
        SupabaseQueryBuilder instance

    Example:
        >>> db = await get_query_builder()
        >>> profile = await db.get_by_field("user_profiles", "session_token", token)
    """
    if client is None:
        client = await get_supabase_client()
    return SupabaseQueryBuilder(client)
