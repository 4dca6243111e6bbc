"""
Settings and database access.

    from config import settings, get_supabase_client
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    SKU_TABLES,
    get_supabase_client,
    count_rows,
    check_connection,
    SupabaseConnectionError,
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "SKU_TABLES",
    "get_supabase_client",
    "count_rows",
    "check_connection",
    "SupabaseConnectionError",
]
