"""
SKU mapping export service.

Flattens the catalog to the CSV interchange format, one row per variation,
or returns it nested for JSON clients. CSV rows carry a trailing CustomerID
column after the five interchange columns; the import parser reads it back
when present.
"""

import csv
from datetime import date
from io import StringIO
from typing import Optional
import structlog

from models.sku_mapping import SkuMappingResponse
from services.sku_mapping_service import SkuMappingService, get_sku_mapping_service
from services.customer_service import CustomerService, get_customer_service

logger = structlog.get_logger(__name__)

CSV_HEADER = [
    "StandardSKU",
    "StandardDescription",
    "VariationSKU",
    "VariationSource",
    "CustomerName",
    "CustomerID",
]


def export_filename(today: Optional[date] = None) -> str:
    """Download name, e.g. sku_mappings_2024-05-01.csv"""
    return f"sku_mappings_{(today or date.today()).isoformat()}.csv"


class SkuExportService:
    """Export of the mapping catalog."""

    def __init__(
        self,
        mapping_service: Optional[SkuMappingService] = None,
        customer_service: Optional[CustomerService] = None
    ):
        self.mappings = mapping_service or get_sku_mapping_service()
        self.customers = customer_service or get_customer_service()

    def export_json(self, search: Optional[str] = None) -> list[SkuMappingResponse]:
        """All mappings with nested variations."""
        mappings = self.mappings.get_all(search)
        logger.info("sku_mappings_exported", format="json", mappings=len(mappings))
        return mappings

    def export_csv(self, search: Optional[str] = None) -> str:
        """
        All mappings as CSV text.

        Mappings without variations produce no rows. Fields are quoted only
        when they need it.

        Returns:
            CSV document with header row
        """
        mappings = self.mappings.get_all(search)
        names = self.customers.get_names(
            v.customer_id for m in mappings for v in m.variations
        )

        buffer = StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(CSV_HEADER)

        rows = 0
        for mapping in mappings:
            for variation in mapping.variations:
                writer.writerow([
                    mapping.standard_sku,
                    mapping.standard_description,
                    variation.variation_sku,
                    variation.source,
                    names.get(variation.customer_id, ""),
                    variation.customer_id,
                ])
                rows += 1

        logger.info(
            "sku_mappings_exported",
            format="csv",
            mappings=len(mappings),
            rows=rows
        )
        return buffer.getvalue()


# Singleton instance for convenience
_sku_export_service: Optional[SkuExportService] = None


def get_sku_export_service() -> SkuExportService:
    """Get or create SkuExportService instance."""
    global _sku_export_service
    if _sku_export_service is None:
        _sku_export_service = SkuExportService()
    return _sku_export_service
