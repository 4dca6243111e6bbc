"""
Supabase connection for the SKU mapping tables.

One cached client is shared by every service; tests patch
get_supabase_client at each service's import site.
"""

from supabase import create_client, Client
from functools import lru_cache
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)

# Tables this service owns (customers is read-only)
SKU_TABLES = ("sku_mappings", "sku_variations")


class SupabaseConnectionError(Exception):
    """Supabase unreachable or the SKU tables are missing."""
    pass


@lru_cache()
def get_supabase_client() -> Client:
    """
    Create the Supabase client once and check the mapping table is reachable.

    Raises:
        SupabaseConnectionError: If the client cannot reach sku_mappings
    """
    logger.info(
        "connecting_to_supabase",
        url=settings.supabase_url[:30] + "..."  # Log partial URL only
    )

    try:
        client = create_client(settings.supabase_url, settings.supabase_key)
        client.table(SKU_TABLES[0]).select("id").limit(1).execute()
    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise SupabaseConnectionError(f"Failed to connect to Supabase: {e}") from e

    logger.info("supabase_connected", table=SKU_TABLES[0])
    return client


# ===================
# HEALTH
# ===================

def count_rows(client: Client, table: str) -> int:
    """Exact row count of a table."""
    result = client.table(table).select("id", count="exact").limit(1).execute()
    return result.count or 0


def check_connection() -> dict:
    """
    Report whether the SKU tables are reachable.

    Returns:
        {"status": "healthy", "tables": {name: row_count}} or
        {"status": "unhealthy", "error": message}
    """
    try:
        client = get_supabase_client()
        return {
            "status": "healthy",
            "tables": {table: count_rows(client, table) for table in SKU_TABLES}
        }
    except Exception as e:
        logger.warning("database_health_check_failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": str(e)
        }
