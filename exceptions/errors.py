"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SKU_MAPPING_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper().replace(' ', '_')}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# SKU MAPPING ERRORS
# ===================

class SkuMappingNotFoundError(NotFoundError):
    """SKU mapping not found."""

    def __init__(self, mapping_id: int):
        super().__init__(
            resource="SKU mapping",
            identifier=str(mapping_id),
            code="SKU_MAPPING_NOT_FOUND"
        )


class SkuMappingExistsError(DuplicateError):
    """Standard SKU already has a mapping."""

    def __init__(self, standard_sku: str):
        super().__init__(
            resource="SKU mapping",
            field="standard_sku",
            value=standard_sku
        )


class SkuVariationNotFoundError(NotFoundError):
    """SKU variation not found."""

    def __init__(self, variation_id: int):
        super().__init__(
            resource="SKU variation",
            identifier=str(variation_id),
            code="SKU_VARIATION_NOT_FOUND"
        )


class DuplicateVariationError(ConflictError):
    """Same customer spelling registered twice on one mapping."""

    def __init__(self, mapping_id: Optional[int], customer_id: int, variation_sku: str):
        super().__init__(
            code="SKU_VARIATION_EXISTS",
            message="Variation already exists for this customer and mapping",
            details={
                "mapping_id": mapping_id,
                "customer_id": customer_id,
                "variation_sku": variation_sku
            }
        )


class InvalidVariationChangeError(ValidationError):
    """Variation change entry is missing what its action needs."""

    def __init__(self, message: str, index: int):
        super().__init__(
            code="SKU_VARIATION_INVALID",
            message=message,
            details={"index": index}
        )


# ===================
# CUSTOMER ERRORS
# ===================

class CustomerNotFoundError(NotFoundError):
    """Customer not found."""

    def __init__(self, customer_id: int):
        super().__init__(
            resource="Customer",
            identifier=str(customer_id),
            code="CUSTOMER_NOT_FOUND"
        )


class UnknownCustomerError(ValidationError):
    """Variation references customers that do not exist."""

    def __init__(self, customer_ids: list[int]):
        super().__init__(
            code="UNKNOWN_CUSTOMER",
            message="Variation references an unknown customer",
            details={"customer_ids": sorted(customer_ids)}
        )


# ===================
# IMPORT FILE ERRORS
# ===================

class MappingFileFormatError(ValidationError):
    """Mapping import file could not be read or has the wrong header."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="MAPPING_FILE_INVALID_FORMAT",
            message=message,
            details=details
        )


class UnsupportedFileTypeError(ValidationError):
    """Uploaded file is not CSV or Excel."""

    def __init__(self, filename: str):
        super().__init__(
            code="UNSUPPORTED_FILE_TYPE",
            message="Allowed types: CSV, Excel (.xlsx)",
            details={"filename": filename}
        )


class ImportFileTooLargeError(AppError):
    """Uploaded file exceeds the import size limit (413)."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            code="IMPORT_FILE_TOO_LARGE",
            message=f"File exceeds the {limit // (1024 * 1024)} MB import limit",
            status_code=413,
            details={"size": size, "limit": limit}
        )
