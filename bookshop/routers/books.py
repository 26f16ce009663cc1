"""Book CRUD routes: authenticated read, admin-only write."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookshop.auth.dependencies import get_current_user, require_admin
from bookshop.config import get_settings
from bookshop.database import get_db
from bookshop.errors import EditConflictError
from bookshop.filters import Filters
from bookshop.schemas.book import BookCreate, BookListResponse, BookRecord, BookUpdate
from bookshop.services.book_store import BOOK_SORT_SAFELIST, BookStore

router = APIRouter(prefix="/v1/books", tags=["Books"])


@router.get("", response_model=BookListResponse)
async def list_books(
    title: str = "",
    genres: str = "",
    page: int = 1,
    page_size: Optional[int] = None,
    sort: str = "id",
    db: AsyncSession = Depends(get_db),
    _user: dict = Depends(get_current_user),
):
    """Paginated book listing with full-text title search and genre filter (comma separated)."""
    filters = Filters(
        page=page,
        page_size=page_size if page_size is not None else get_settings().default_page_size,
        sort=sort,
        sort_safelist=BOOK_SORT_SAFELIST,
    )
    genre_list = [g.strip() for g in genres.split(",") if g.strip()]
    books, metadata = await BookStore(db).list_books(title, genre_list, filters)
    return BookListResponse(books=books, metadata=metadata)


@router.get("/{book_id}", response_model=BookRecord)
async def get_book(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    _user: dict = Depends(get_current_user),
):
    return await BookStore(db).get(book_id)


@router.post("", response_model=BookRecord, status_code=status.HTTP_201_CREATED)
async def create_book(
    data: BookCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    """Create a new book (admin only)."""
    book = await BookStore(db).insert(data)
    response.headers["Location"] = f"/v1/books/{book.id}"
    return book


@router.patch("/{book_id}", response_model=BookRecord)
async def update_book(
    book_id: int,
    data: BookUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
    expected_version: Optional[str] = Header(None, alias="X-Expected-Version"),
):
    """Partially update a book (admin only).

    When ``X-Expected-Version`` is sent and no longer matches the stored
    version the request is rejected before any write is attempted.
    """
    store = BookStore(db)
    book = await store.get(book_id)

    if expected_version is not None and expected_version != str(book.version):
        raise EditConflictError()

    changed = book.model_copy(update=data.model_dump(exclude_unset=True, exclude_none=True))
    await store.update(changed)
    return changed


@router.delete("/{book_id}")
async def delete_book(
    book_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    """Delete a book (admin only)."""
    await BookStore(db).delete(book_id)
    return {"message": "book successfully deleted"}
