from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


class PageInfo(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PaginatedResponse(ApiResponse[list[T]], Generic[T]):
    page_info: PageInfo


class PaginationParams(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    sort_by: str = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
