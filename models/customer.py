"""
Customer schema (read-only view of the customers table).
"""

from typing import Optional

from models.base import BaseSchema


class CustomerSummary(BaseSchema):
    """Customer fields the SKU mapping code needs."""

    id: int
    name: str
    email: Optional[str] = None
