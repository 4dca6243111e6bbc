"""
Shared schema pieces: base config, timestamps, list and success envelopes.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, Optional


class BaseSchema(BaseModel):
    """
    Base for request and response schemas.

    Strings are trimmed (SKUs pasted from spreadsheets often carry spaces),
    assignments are validated and rows can be loaded with from_attributes.
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class TimestampMixin(BaseModel):
    """created_at / updated_at as stored by Postgres."""
    created_at: datetime
    updated_at: Optional[datetime] = None


class PaginatedResponse(BaseModel):
    """One page of a list endpoint."""
    data: list
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool = False
    has_previous: bool = False

    @classmethod
    def create(cls, data: list, total: int, page: int, page_size: int):
        """Build the envelope; page numbers are 1-indexed."""
        total_pages = -(-total // page_size) if page_size else 0
        return cls(
            data=data,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        )


class SuccessResponse(BaseModel):
    """{"success": true, "data": ..., "error": null} envelope."""
    success: bool = True
    data: Any = None
    error: Optional[str] = None
