from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a listing, with enough metadata to request the next one."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total
