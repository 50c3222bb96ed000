"""Database module."""

from src.database.store import OrderStore, SqlOrderStore
from src.database.supabase_client import SupabaseOrderStore

__all__ = ["OrderStore", "SqlOrderStore", "SupabaseOrderStore"]
