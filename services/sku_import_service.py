"""
SKU mapping import service.

Loads an interchange file into the mapping catalog. Each standard SKU is
written on its own: a failing group is counted and the import moves on.
"""

import time
from typing import Optional
import structlog

from models.sku_mapping import SkuVariationCreate
from models.sku_import import SkuImportResult
from parsers.mapping_file_parser import MappingGroup, parse_mapping_file
from services.sku_mapping_service import SkuMappingService, get_sku_mapping_service
from services.customer_service import CustomerService, get_customer_service
from exceptions import AppError

logger = structlog.get_logger(__name__)


class SkuImportService:
    """Bulk import of mappings and variations."""

    def __init__(
        self,
        mapping_service: Optional[SkuMappingService] = None,
        customer_service: Optional[CustomerService] = None
    ):
        self.mappings = mapping_service or get_sku_mapping_service()
        self.customers = customer_service or get_customer_service()

    def _import_group(
        self,
        group: MappingGroup,
        known_customers: set[int],
        result: SkuImportResult
    ) -> None:
        variations = []
        for row in group.variations:
            if row.customer_id not in known_customers:
                logger.warning(
                    "import_variation_unknown_customer",
                    row=row.row,
                    standard_sku=group.standard_sku,
                    customer_id=row.customer_id
                )
                result.variations_skipped += 1
                continue
            variations.append(SkuVariationCreate(
                variation_sku=row.variation_sku,
                source=row.source,
                customer_id=row.customer_id,
            ))

        # A mapping is never created without at least one variation
        if not variations and self.mappings.get_by_standard_sku(group.standard_sku) is None:
            logger.warning(
                "import_group_skipped_no_variations",
                standard_sku=group.standard_sku,
                rows=len(group.variations)
            )
            return

        outcome = self.mappings.upsert_group(
            group.standard_sku,
            group.standard_description,
            variations
        )

        if outcome.created:
            result.mappings_created += 1
        elif outcome.updated:
            result.mappings_updated += 1

    def import_file(self, filename: str, content: bytes) -> SkuImportResult:
        """
        Import a CSV or Excel mapping file.

        Args:
            filename: Upload name (extension picks the reader)
            content: File bytes

        Returns:
            SkuImportResult; errors > 0 means some groups were not written

        Raises:
            UnsupportedFileTypeError: If the file is not CSV or Excel
            MappingFileFormatError: If the file can't be read or the header is wrong
        """
        started = time.time()
        logger.info("importing_sku_mappings", filename=filename, size=len(content))

        parsed = parse_mapping_file(filename, content)

        result = SkuImportResult(
            file_name=filename,
            file_size=len(content),
            rows_processed=parsed.rows_parsed,
            rows_skipped=len(parsed.skipped),
        )

        known_customers = self.customers.existing_ids(
            row.customer_id for group in parsed.groups for row in group.variations
        )

        for group in parsed.groups:
            try:
                self._import_group(group, known_customers, result)
            except AppError as e:
                logger.error(
                    "sku_import_group_failed",
                    standard_sku=group.standard_sku,
                    code=e.code,
                    error=e.message
                )
                result.errors += 1
                result.error_details.append(f"{group.standard_sku}: {e.message}")
            except Exception as e:
                logger.error(
                    "sku_import_group_failed",
                    standard_sku=group.standard_sku,
                    error=str(e)
                )
                result.errors += 1
                result.error_details.append(f"{group.standard_sku}: {e}")

        result.import_duration_ms = int((time.time() - started) * 1000)

        logger.info(
            "sku_mappings_imported",
            rows_processed=result.rows_processed,
            rows_skipped=result.rows_skipped,
            created=result.mappings_created,
            updated=result.mappings_updated,
            variations_skipped=result.variations_skipped,
            errors=result.errors,
            duration_ms=result.import_duration_ms
        )
        return result


# Singleton instance for convenience
_sku_import_service: Optional[SkuImportService] = None


def get_sku_import_service() -> SkuImportService:
    """Get or create SkuImportService instance."""
    global _sku_import_service
    if _sku_import_service is None:
        _sku_import_service = SkuImportService()
    return _sku_import_service
