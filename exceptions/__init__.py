"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # SKU mappings
    SkuMappingNotFoundError,
    SkuMappingExistsError,
    SkuVariationNotFoundError,
    DuplicateVariationError,
    InvalidVariationChangeError,

    # Customers
    CustomerNotFoundError,
    UnknownCustomerError,

    # Import files
    MappingFileFormatError,
    UnsupportedFileTypeError,
    ImportFileTooLargeError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # SKU mappings
    "SkuMappingNotFoundError",
    "SkuMappingExistsError",
    "SkuVariationNotFoundError",
    "DuplicateVariationError",
    "InvalidVariationChangeError",

    # Customers
    "CustomerNotFoundError",
    "UnknownCustomerError",

    # Import files
    "MappingFileFormatError",
    "UnsupportedFileTypeError",
    "ImportFileTooLargeError",
]
