"""Supabase database connection management."""

import logging

from supabase import AsyncClient, acreate_client

from src.yourvoice.config import settings

logger = logging.getLogger(__name__)

# Created lazily on first use, then shared for the life of the process
_client: AsyncClient | None = None


async def get_supabase_client() -> AsyncClient:
    """
    Get async Supabase client instance with anon key (created once per process).

    The identity flow runs with the anon key, so every query respects the
    table's RLS policies.

    Returns:
        Configured async Supabase client with anon key

    Example:
        >>> client = await get_supabase_client()
        >>> response = await client.table("user_profiles").select("*").execute()
    """
    global _client

    if _client is None:
        logger.info(f"Creating Supabase client for {settings.supabase_url}")
        _client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
    return _client
