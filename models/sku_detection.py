"""
SKU detection and auto-map schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

from models.base import SuccessResponse


class MatchType(str, Enum):
    """How a SKU was resolved."""
    EXACT = "exact"
    FUZZY = "fuzzy"


class AutoMapStatus(str, Enum):
    """Outcome of auto-mapping one ingested SKU."""
    MAPPED = "mapped"          # Replaced by a detected standard SKU
    STANDARD = "standard"      # Already in catalog format, kept
    UNRESOLVED = "unresolved"  # Kept as-is, needs a human


class SkuDetectionRequest(BaseModel):
    """
    Batch of raw SKUs to resolve.

    SKUs are kept exactly as sent: exact matching is case and whitespace
    sensitive.
    """

    skus: list[str] = Field(
        ...,
        min_length=1,
        description="Raw SKUs from email, attachment or manual entry"
    )
    customer_id: Optional[int] = Field(
        None,
        ge=1,
        description="Customer the SKUs came from (preferred on exact ties)"
    )


class SkuDetectionResult(BaseModel):
    """Resolution of one input SKU."""

    original: str
    detected: bool
    suggested: Optional[str] = None
    description: Optional[str] = None
    confidence: Optional[int] = Field(None, ge=0, le=100)
    match_type: Optional[MatchType] = None
    source: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    message: Optional[str] = None


class SkuDetectionResponse(SuccessResponse):
    """Detection results, one per input SKU, same order."""

    data: list[SkuDetectionResult]


class AutoMapItem(BaseModel):
    """SKU to use on the RFQ item."""

    original: str
    sku: str
    status: AutoMapStatus
    confidence: Optional[int] = None
    description: Optional[str] = None


class AutoMapResponse(BaseModel):
    """Auto-map results with counts."""

    data: list[AutoMapItem]
    mapped_count: int
    unresolved_count: int
