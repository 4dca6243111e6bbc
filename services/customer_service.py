"""
Customer lookup service.

Customers are owned by the CRM side of the application; SKU mapping code
only needs to check they exist and show their names.
"""

from typing import Iterable, Optional
import structlog

from config import get_supabase_client
from models.customer import CustomerSummary
from exceptions import CustomerNotFoundError, DatabaseError

logger = structlog.get_logger(__name__)


class CustomerService:
    """Read-only access to the customers table."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "customers"

    def get_by_id(self, customer_id: int) -> CustomerSummary:
        """
        Get a customer by ID.

        Raises:
            CustomerNotFoundError: If customer doesn't exist
        """
        customer = self.find(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id)
        return customer

    def find(self, customer_id: int) -> Optional[CustomerSummary]:
        """Get a customer by ID, or None."""
        logger.debug("getting_customer", customer_id=customer_id)

        try:
            result = (
                self.db.table(self.table)
                .select("id, name, email")
                .eq("id", customer_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_customer_failed", customer_id=customer_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            return None
        return CustomerSummary(**result.data[0])

    def get_many(self, customer_ids: Iterable[int]) -> dict[int, CustomerSummary]:
        """
        Get several customers in one query.

        Args:
            customer_ids: IDs to look up (duplicates allowed)

        Returns:
            Dict of id -> CustomerSummary for the IDs that exist
        """
        ids = sorted({cid for cid in customer_ids if cid is not None})
        if not ids:
            return {}

        try:
            result = (
                self.db.table(self.table)
                .select("id, name, email")
                .in_("id", ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_customers_failed", count=len(ids), error=str(e))
            raise DatabaseError("select", str(e))

        return {row["id"]: CustomerSummary(**row) for row in result.data}

    def existing_ids(self, customer_ids: Iterable[int]) -> set[int]:
        """Subset of customer_ids that exist."""
        return set(self.get_many(customer_ids).keys())

    def get_names(self, customer_ids: Iterable[int]) -> dict[int, str]:
        """Dict of id -> name for the IDs that exist."""
        return {cid: c.name for cid, c in self.get_many(customer_ids).items()}


# Singleton instance for convenience
_customer_service: Optional[CustomerService] = None


def get_customer_service() -> CustomerService:
    """Get or create CustomerService instance."""
    global _customer_service
    if _customer_service is None:
        _customer_service = CustomerService()
    return _customer_service
