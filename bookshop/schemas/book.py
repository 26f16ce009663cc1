"""Book schemas.

Request models only fix the JSON shape; the value rules live in
``bookshop.services.book_store.validate_book`` so every failing field is
reported at once.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from bookshop.schemas.pagination import Metadata


class BookCreate(BaseModel):
    title: str = ""
    author: str = ""
    year: int = 0
    genres: Optional[list[str]] = None
    price: int = 0


class BookUpdate(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    year: Optional[int] = None
    genres: Optional[list[str]] = None
    price: Optional[int] = None


class BookRecord(BaseModel):
    id: int
    title: str
    author: str
    year: int
    genres: list[str]
    price: int
    version: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookListResponse(BaseModel):
    books: list[BookRecord]
    metadata: Metadata
