"""
Offset pagination helpers.

Usage:
    params = OffsetParams(page=2, limit=50)
    stmt = stmt.offset(params.offset).limit(params.limit)
    pages = page_count(total, params.limit)
"""

from pydantic import BaseModel, Field


class OffsetParams(BaseModel):
    """Offset pagination parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(default=50, ge=1, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_count(total: int, limit: int) -> int:
    """ceil(total / limit), 0 for an empty result."""
    return (total + limit - 1) // limit if limit > 0 else 0
