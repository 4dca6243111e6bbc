"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.sku_mappings import router as sku_mappings_router

__all__ = [
    "sku_mappings_router",
]
