"""
Shared response schemas.

Every endpoint answers with the same envelope:

    {"success": true, "message": "...", "data": ...}
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema serialized with camelCase field names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope."""
    success: bool = True
    message: str | None = None
    data: T | None = None


def success_response(data: T = None, message: str | None = None) -> ApiResponse[T]:
    """Wrap a payload in the success envelope."""
    return ApiResponse(success=True, message=message, data=data)
