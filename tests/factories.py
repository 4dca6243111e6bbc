"""
Test data factories.

Uses factory pattern to generate consistent rows matching the database
schema (integer ids, ISO timestamps).
"""

from datetime import datetime
from typing import Optional

# updated_at of the seeded toner catalog rows
CATALOG_TIMESTAMP = "2024-01-01T00:00:00+00:00"


class CustomerFactory:
    """
    Factory for customers table rows.

    Usage:
        customer = CustomerFactory.create(id=1, name="Tech Solutions Inc")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[int] = None,
        name: Optional[str] = None,
        email: Optional[str] = None
    ) -> dict:
        counter = cls._next_counter()
        return {
            "id": id or counter,
            "name": name or f"Customer {counter}",
            "email": email or f"buyer{counter}@example.com",
        }

    @classmethod
    def reset_counter(cls):
        cls._counter = 0


class MappingFactory:
    """
    Factory for sku_mappings rows.

    Usage:
        # Create with defaults
        mapping = MappingFactory.create()

        # Create with overrides
        mapping = MappingFactory.create(standard_sku="CF226X")

        # Create multiple
        mappings = MappingFactory.create_batch(5)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[int] = None,
        standard_sku: Optional[str] = None,
        standard_description: Optional[str] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None
    ) -> dict:
        """
        Create a single mapping dict.

        Args:
            id: Mapping ID (counter if not provided)
            standard_sku: Catalog SKU (auto-generated if not provided)
            standard_description: Catalog description
            created_at: Timestamp (auto-generated if not provided)
            updated_at: Timestamp (auto-generated if not provided)

        Returns:
            Mapping dict matching database schema
        """
        counter = cls._next_counter()
        now = datetime.utcnow().isoformat() + "Z"

        return {
            "id": id or counter,
            "standard_sku": standard_sku or f"STD{counter:03d}",
            "standard_description": standard_description or f"Test toner {counter}",
            "created_at": created_at or now,
            "updated_at": updated_at or now,
        }

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        """Create multiple mappings with consecutive ids."""
        return [cls.create(id=i + 1, **overrides) for i in range(count)]

    @classmethod
    def reset_counter(cls):
        cls._counter = 0


class VariationFactory:
    """Factory for sku_variations rows."""

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[int] = None,
        mapping_id: int = 1,
        customer_id: int = 1,
        variation_sku: Optional[str] = None,
        source: str = "Customer Provided",
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None
    ) -> dict:
        counter = cls._next_counter()
        now = datetime.utcnow().isoformat() + "Z"

        return {
            "id": id or counter,
            "mapping_id": mapping_id,
            "customer_id": customer_id,
            "variation_sku": variation_sku or f"VAR-{counter}",
            "source": source,
            "created_at": created_at or now,
            "updated_at": updated_at or now,
        }

    @classmethod
    def reset_counter(cls):
        cls._counter = 0


def variation_payload(
    variation_sku: str,
    customer_id: int = 1,
    source: str = "Customer Provided"
) -> dict:
    """Request body for one variation."""
    return {
        "variation_sku": variation_sku,
        "source": source,
        "customer_id": customer_id,
    }
