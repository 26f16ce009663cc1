"""
Query descriptor for list endpoints: paging, safelisted sorting, metadata.

Sort tokens reaching the store are always members of a fixed per-endpoint
safelist; the store maps them to ORM columns and never interpolates them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from bookshop.schemas.pagination import Metadata
from bookshop.validator import Validator, permitted_value

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


@dataclass
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = "id"
    sort_safelist: tuple[str, ...] = field(default_factory=tuple)

    def sort_column(self) -> str:
        """Return the safelisted sort token without its direction prefix."""
        if self.sort not in self.sort_safelist:
            raise RuntimeError(f"unsafe sort parameter: {self.sort}")
        return self.sort.removeprefix("-")

    def sort_direction(self) -> str:
        return "DESC" if self.sort.startswith("-") else "ASC"

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def validate_filters(v: Validator, filters: Filters) -> None:
    v.check(filters.page > 0, "page", "must be greater than zero")
    v.check(filters.page <= MAX_PAGE, "page", "must be a maximum of 10 million")
    v.check(filters.page_size > 0, "page_size", "must be greater than zero")
    v.check(filters.page_size <= MAX_PAGE_SIZE, "page_size", "must be a maximum of 100")
    v.check(
        permitted_value(filters.sort, *filters.sort_safelist),
        "sort",
        "invalid sort value",
    )


def calculate_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    if total_records == 0:
        return Metadata()
    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=math.ceil(total_records / page_size),
        total_records=total_records,
    )
