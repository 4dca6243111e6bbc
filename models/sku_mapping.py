"""
SKU mapping schemas for validation and serialization.

A mapping ties one standard (catalog) SKU to the spellings customers use
for it. Each spelling is a variation owned by exactly one mapping.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema, TimestampMixin, PaginatedResponse


class VariationAction(str, Enum):
    """What to do with a variation entry during a non-replacing update."""
    NEW = "new"
    DELETE = "delete"


# ===================
# VARIATIONS
# ===================

class SkuVariationCreate(BaseSchema):
    """
    One customer's spelling of a standard SKU.

    Required: variation_sku, source, customer_id
    """

    variation_sku: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="SKU exactly as the customer writes it",
        examples=["HP26X", "HP-26-X"]
    )
    source: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Where this spelling came from",
        examples=["Customer Provided", "Email Import", "Manual Entry"]
    )
    customer_id: int = Field(
        ...,
        ge=1,
        description="Customer who uses this spelling"
    )


class SkuVariationChange(BaseSchema):
    """
    Variation entry inside a mapping update.

    - action=None with id: patch that variation
    - action="new" without id: insert
    - action="delete" with id: remove
    In replacement mode every entry is inserted and action/id are ignored.
    """

    id: Optional[int] = Field(None, description="Existing variation ID")
    variation_sku: Optional[str] = Field(None, min_length=1, max_length=100)
    source: Optional[str] = Field(None, min_length=1, max_length=255)
    customer_id: Optional[int] = Field(None, ge=1)
    action: Optional[VariationAction] = Field(
        None,
        description="new, delete, or omitted to patch"
    )


class SkuVariationResponse(BaseSchema, TimestampMixin):
    """Variation as stored."""

    id: int = Field(..., description="Variation ID")
    mapping_id: int = Field(..., description="Owning mapping ID")
    customer_id: int
    variation_sku: str
    source: str


# ===================
# MAPPINGS
# ===================

class SkuMappingCreate(BaseSchema):
    """
    Create a new standard SKU mapping.

    Required: standard_sku, standard_description, at least one variation
    """

    standard_sku: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Catalog SKU (unique)",
        examples=["CF226X"]
    )
    standard_description: str = Field(
        ...,
        min_length=1,
        description="Catalog description",
        examples=["HP 26X High Yield Black Toner"]
    )
    variations: list[SkuVariationCreate] = Field(
        ...,
        min_length=1,
        description="Known customer spellings"
    )


class SkuMappingUpdate(BaseSchema):
    """
    Update an existing mapping.

    All fields optional - only provided fields are updated.
    With replacement_mode=True the variations list replaces the whole set.
    """

    standard_sku: Optional[str] = Field(None, min_length=1, max_length=100)
    standard_description: Optional[str] = Field(None, min_length=1)
    variations: Optional[list[SkuVariationChange]] = None
    replacement_mode: bool = Field(
        False,
        description="Delete all existing variations before inserting these"
    )


class SkuMappingResponse(BaseSchema, TimestampMixin):
    """Mapping with its variations."""

    id: int = Field(..., description="Mapping ID")
    standard_sku: str
    standard_description: str
    variations: list[SkuVariationResponse] = Field(default_factory=list)


class SkuMappingListResponse(PaginatedResponse):
    """List of mappings with pagination."""

    data: list[SkuMappingResponse]


class StandardSkuMatch(BaseSchema):
    """Standard SKU found for a variation spelling."""

    standard_sku: str
    standard_description: str
