"""
Import/export schemas for the mapping interchange file.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from models.base import SuccessResponse
from models.sku_mapping import SkuMappingResponse


class ExportFormat(str, Enum):
    """Supported export formats."""
    CSV = "csv"
    JSON = "json"


class SkuImportResult(BaseModel):
    """
    Import summary.

    errors counts mapping groups that failed; the rest of the file is
    still imported.
    """

    file_name: Optional[str] = None
    file_size: int = 0
    rows_processed: int = 0
    rows_skipped: int = 0
    mappings_created: int = 0
    mappings_updated: int = 0
    variations_skipped: int = 0
    errors: int = 0
    error_details: list[str] = Field(default_factory=list)
    import_duration_ms: int = 0


class SkuImportResponse(BaseModel):
    """Import endpoint response."""

    message: str
    results: SkuImportResult


class SkuExportResponse(SuccessResponse):
    """JSON export wrapped in the success envelope."""

    data: list[SkuMappingResponse]
