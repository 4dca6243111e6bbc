"""
Business logic services.

Each service handles one domain area.
"""

from services.customer_service import CustomerService, get_customer_service
from services.sku_mapping_service import SkuMappingService, get_sku_mapping_service
from services.sku_detection_service import SkuDetectionService, get_sku_detection_service
from services.sku_import_service import SkuImportService, get_sku_import_service
from services.sku_export_service import SkuExportService, get_sku_export_service

__all__ = [
    "CustomerService",
    "get_customer_service",
    "SkuMappingService",
    "get_sku_mapping_service",
    "SkuDetectionService",
    "get_sku_detection_service",
    "SkuImportService",
    "get_sku_import_service",
    "SkuExportService",
    "get_sku_export_service",
]
