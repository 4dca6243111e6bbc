"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    PaginatedResponse,
    SuccessResponse,
)
from models.customer import CustomerSummary
from models.sku_mapping import (
    VariationAction,
    SkuVariationCreate,
    SkuVariationChange,
    SkuVariationResponse,
    SkuMappingCreate,
    SkuMappingUpdate,
    SkuMappingResponse,
    SkuMappingListResponse,
    StandardSkuMatch,
)
from models.sku_detection import (
    MatchType,
    AutoMapStatus,
    SkuDetectionRequest,
    SkuDetectionResult,
    SkuDetectionResponse,
    AutoMapItem,
    AutoMapResponse,
)
from models.sku_import import (
    ExportFormat,
    SkuImportResult,
    SkuImportResponse,
    SkuExportResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "PaginatedResponse",
    "SuccessResponse",

    # Customer
    "CustomerSummary",

    # SKU mapping
    "VariationAction",
    "SkuVariationCreate",
    "SkuVariationChange",
    "SkuVariationResponse",
    "SkuMappingCreate",
    "SkuMappingUpdate",
    "SkuMappingResponse",
    "SkuMappingListResponse",
    "StandardSkuMatch",

    # Detection
    "MatchType",
    "AutoMapStatus",
    "SkuDetectionRequest",
    "SkuDetectionResult",
    "SkuDetectionResponse",
    "AutoMapItem",
    "AutoMapResponse",

    # Import / export
    "ExportFormat",
    "SkuImportResult",
    "SkuImportResponse",
    "SkuExportResponse",
]
