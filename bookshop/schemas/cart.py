"""Cart schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from bookshop.schemas.book import BookRecord


class CartAdd(BaseModel):
    book_id: int
    quantity: int


class CartEntryRef(BaseModel):
    """Identifies one entry of the caller's cart."""

    book_id: int
    id: int


class CartEntryRecord(BaseModel):
    id: int
    email: str
    book_id: int
    books: list[str]
    quantity: int
    total_price: int
    total_quantity: int
    ordered: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderedBooksResponse(BaseModel):
    books: list[BookRecord]
