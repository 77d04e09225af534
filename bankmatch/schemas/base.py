"""Base schema classes and generic types."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class BaseResponse(BaseModel):
    """Base for all response schemas with from_attributes config."""

    model_config = ConfigDict(from_attributes=True)


class CamelRequest(BaseModel):
    """Request body accepting camelCase keys (``transactionIds``) as well as snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ListResponse(BaseModel, Generic[T]):  # noqa: UP046
    """Generic list response with item count.

    ``total`` counts every item matching the query and may exceed len(items).
    """

    items: list[T]
    total: int


class ErrorResponse(BaseModel):
    """Failure payload shared by every endpoint."""

    success: bool = False
    error: str
