"""Database connection and query helpers."""

from src.yourvoice.services.database.connection import get_supabase_client
from src.yourvoice.services.database.exceptions import ConflictError
from src.yourvoice.services.database.utils import SupabaseQueryBuilder, get_query_builder

__all__ = [
    "get_supabase_client",
    "ConflictError",
    "SupabaseQueryBuilder",
    "get_query_builder",
]
