from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope wrapping every JSON response body."""

    success: bool = True
    message: str
    data: T | None = None


def ok(message: str, data: T | None = None) -> ApiResponse[T]:
    """Build a success envelope."""
    return ApiResponse(message=message, data=data)
