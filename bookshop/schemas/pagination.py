"""Pagination metadata returned alongside every list response."""

from __future__ import annotations

from pydantic import BaseModel


class Metadata(BaseModel):
    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0
