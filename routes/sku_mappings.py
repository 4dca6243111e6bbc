"""
SKU mapping API routes.

CRUD for standard SKU mappings and their variations, batch detection,
auto-mapping for ingestion, and CSV/Excel import and export.
"""

from fastapi import APIRouter, Query, UploadFile, File
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Optional
import structlog

from config import settings
from models.sku_mapping import (
    SkuMappingCreate,
    SkuMappingUpdate,
    SkuMappingResponse,
    SkuMappingListResponse,
    SkuVariationCreate,
    SkuVariationResponse,
    StandardSkuMatch,
)
from models.sku_detection import (
    SkuDetectionRequest,
    SkuDetectionResponse,
    AutoMapResponse,
)
from models.sku_import import (
    ExportFormat,
    SkuImportResponse,
    SkuExportResponse,
)
from services.sku_mapping_service import get_sku_mapping_service
from services.sku_detection_service import get_sku_detection_service
from services.sku_import_service import get_sku_import_service
from services.sku_export_service import get_sku_export_service, export_filename
from exceptions import (
    AppError,
    NotFoundError,
    ValidationError,
    ImportFileTooLargeError,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# LIST / CREATE
# ===================

@router.get("", response_model=SkuMappingListResponse)
async def list_mappings(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: Optional[int] = Query(None, ge=1, description="Items per page"),
    search: Optional[str] = Query(None, description="Match standard SKU or description")
):
    """
    List mappings with their variations.

    Returns paginated list, oldest mapping first.
    """
    try:
        service = get_sku_mapping_service()
        page_size = min(page_size or settings.mapping_page_size, settings.mapping_max_page_size)

        mappings, total = service.get_page(page=page, page_size=page_size, search=search)

        return SkuMappingListResponse.create(
            data=mappings,
            total=total,
            page=page,
            page_size=page_size
        )

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=SkuMappingResponse, status_code=201)
async def create_mapping(data: SkuMappingCreate):
    """
    Create a mapping with its variations.

    Raises:
        409: Standard SKU already exists, or a variation repeats
        422: Validation error or unknown customer
    """
    try:
        service = get_sku_mapping_service()
        return service.create(data)

    except Exception as e:
        return handle_error(e)


# ===================
# IMPORT / EXPORT
# ===================

@router.get("/export")
async def export_mappings(
    format: ExportFormat = Query(ExportFormat.CSV, description="csv or json"),
    search: Optional[str] = Query(None, description="Only export matching mappings")
):
    """
    Export mappings.

    csv: file download, one row per variation.
    json: nested mappings in the success envelope.
    """
    try:
        service = get_sku_export_service()

        if format == ExportFormat.JSON:
            return SkuExportResponse(data=service.export_json(search))

        content = service.export_csv(search)
        return StreamingResponse(
            iter([content]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'}
        )

    except Exception as e:
        return handle_error(e)


@router.post("/import", response_model=SkuImportResponse)
async def import_mappings(file: Optional[UploadFile] = File(None)):
    """
    Import mappings from a CSV or Excel file.

    Bad rows are skipped and failing mappings are counted in results.errors;
    the rest of the file is still imported.

    Raises:
        413: File too large
        422: No file, unsupported type or bad header
    """
    try:
        if file is None:
            raise ValidationError("No file uploaded")

        content = await file.read()
        if len(content) > settings.import_max_bytes:
            raise ImportFileTooLargeError(len(content), settings.import_max_bytes)

        service = get_sku_import_service()
        results = service.import_file(file.filename, content)

        if results.errors:
            message = f"Imported with {results.errors} failed mapping(s)"
        else:
            message = "File imported successfully"

        return SkuImportResponse(message=message, results=results)

    except Exception as e:
        return handle_error(e)


# ===================
# DETECTION
# ===================

@router.post("/detect", response_model=SkuDetectionResponse)
async def detect_skus(request: SkuDetectionRequest):
    """
    Resolve raw SKUs to standard SKUs.

    One result per input SKU, same order.
    """
    try:
        service = get_sku_detection_service()
        results = service.detect(request.skus, request.customer_id)
        return SkuDetectionResponse(data=results)

    except Exception as e:
        return handle_error(e)


@router.post("/auto-map", response_model=AutoMapResponse)
async def auto_map_skus(request: SkuDetectionRequest):
    """Pick the SKU to store for each ingested item."""
    try:
        service = get_sku_detection_service()
        return service.auto_map(request.skus, request.customer_id)

    except Exception as e:
        return handle_error(e)


@router.get("/resolve/{variation_sku}", response_model=StandardSkuMatch)
async def resolve_variation(variation_sku: str):
    """
    Exact lookup of the standard SKU for a spelling.

    Raises:
        404: No variation with that spelling
    """
    try:
        service = get_sku_mapping_service()
        match = service.find_standard_sku_for(variation_sku)

        if not match:
            raise NotFoundError(
                resource="Standard SKU",
                identifier=variation_sku,
                code="STANDARD_SKU_NOT_FOUND"
            )

        return match

    except Exception as e:
        return handle_error(e)


# ===================
# VARIATIONS
# ===================

@router.get("/variations/{variation_id}", response_model=SkuVariationResponse)
async def get_variation(variation_id: int):
    """
    Get a single variation.

    Raises:
        404: Variation not found
    """
    try:
        service = get_sku_mapping_service()
        return service.get_variation(variation_id)

    except Exception as e:
        return handle_error(e)


@router.delete("/variations/{variation_id}", status_code=204)
async def delete_variation(variation_id: int):
    """
    Delete a single variation.

    Raises:
        404: Variation not found
    """
    try:
        service = get_sku_mapping_service()
        service.delete_variation(variation_id)
        return None  # 204 No Content

    except Exception as e:
        return handle_error(e)


# ===================
# SINGLE MAPPING
# ===================

@router.get("/{mapping_id}", response_model=SkuMappingResponse)
async def get_mapping(mapping_id: int):
    """
    Get a mapping with its variations.

    Raises:
        404: Mapping not found
    """
    try:
        service = get_sku_mapping_service()
        return service.get_by_id(mapping_id)

    except Exception as e:
        return handle_error(e)


@router.patch("/{mapping_id}", response_model=SkuMappingResponse)
async def update_mapping(mapping_id: int, data: SkuMappingUpdate):
    """
    Update a mapping.

    Only provided fields are updated. replacement_mode=true swaps the whole
    variation set for the one supplied.

    Raises:
        404: Mapping or variation not found
        409: New standard SKU already exists, or a variation repeats
        422: Validation error
    """
    try:
        service = get_sku_mapping_service()
        return service.update(mapping_id, data)

    except Exception as e:
        return handle_error(e)


@router.delete("/{mapping_id}", status_code=204)
async def delete_mapping(mapping_id: int):
    """
    Delete a mapping and all its variations.

    Raises:
        404: Mapping not found
    """
    try:
        service = get_sku_mapping_service()
        service.delete(mapping_id)
        return None  # 204 No Content

    except Exception as e:
        return handle_error(e)


@router.post("/{mapping_id}/variations", response_model=SkuVariationResponse, status_code=201)
async def add_variation(mapping_id: int, data: SkuVariationCreate):
    """
    Add a variation to a mapping.

    Raises:
        404: Mapping not found
        409: Variation already exists
        422: Unknown customer
    """
    try:
        service = get_sku_mapping_service()
        return service.add_variation(mapping_id, data)

    except Exception as e:
        return handle_error(e)
