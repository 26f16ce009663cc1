"""
Versioned book store with optimistic-concurrency CRUD plus filtered listing.

Invariants:
    - version starts at 1 and grows by exactly 1 per successful update
    - an update is a single conditional UPDATE keyed on (id, version); a miss
      is an EditConflictError whether the row is stale or gone
    - list results and their total come from one statement, so a page and its
      count always describe the same snapshot
"""

from __future__ import annotations

from datetime import date
from typing import Optional

import structlog
from sqlalchemy import and_, delete, func, insert, literal_column, select, update
from sqlalchemy.sql.elements import ColumnElement

from bookshop.errors import EditConflictError, RecordNotFoundError, ValidationError
from bookshop.filters import Filters, calculate_metadata, validate_filters
from bookshop.models.book import Book, BookGenre, genre_rows
from bookshop.schemas.book import BookCreate, BookRecord
from bookshop.schemas.pagination import Metadata
from bookshop.services.base import SessionStore
from bookshop.validator import Validator, unique

logger = structlog.get_logger()

FIRST_PRINTED_YEAR = 1455

BOOK_SORT_COLUMNS = {
    "id": Book.id,
    "title": Book.title,
    "year": Book.year,
    "price": Book.price,
}
BOOK_SORT_SAFELIST = tuple(BOOK_SORT_COLUMNS) + tuple(f"-{token}" for token in BOOK_SORT_COLUMNS)


def validate_book(v: Validator, book: BookCreate | BookRecord, current_year: Optional[int] = None) -> None:
    if current_year is None:
        current_year = date.today().year

    v.check(book.title != "", "title", "must be provided")
    v.check(len(book.title.encode()) <= 500, "title", "must not be more than 500 bytes long")

    v.check(book.author != "", "author", "must be provided")
    v.check(len(book.author.encode()) <= 100, "author", "must not be more than 100 bytes long")

    v.check(book.year != 0, "year", "must be provided")
    v.check(book.year >= FIRST_PRINTED_YEAR, "year", f"must be greater than {FIRST_PRINTED_YEAR}")
    v.check(book.year <= current_year, "year", "must not be in the future")

    v.check(book.genres is not None, "genres", "must be provided")
    genres = book.genres or []
    v.check(len(genres) >= 1, "genres", "must contain at least 1 genre")
    v.check(len(genres) <= 5, "genres", "must not contain more than 5 genres")
    v.check(unique(genres), "genres", "must not contain duplicate values")

    v.check(book.price > 0, "price", "must be greater than zero")


def _check(book: BookCreate | BookRecord, current_year: Optional[int]) -> None:
    v = Validator()
    validate_book(v, book, current_year)
    if not v.valid:
        raise ValidationError(v.errors)


class BookStore(SessionStore):
    """CRUD and search over books for one database session."""

    def __init__(self, session, timeout: Optional[float] = None, current_year: Optional[int] = None):
        super().__init__(session, timeout)
        self._current_year = current_year

    async def insert(self, data: BookCreate) -> BookRecord:
        _check(data, self._current_year)

        async def work() -> BookRecord:
            book = Book(
                title=data.title,
                author=data.author,
                year=data.year,
                price=data.price,
                genre_links=genre_rows(data.genres),
            )
            self._session.add(book)
            await self._session.flush()
            return BookRecord.model_validate(book)

        record = await self._run("book_insert", work, write=True)
        logger.info("book_created", book_id=record.id)
        return record

    async def get(self, book_id: int) -> BookRecord:
        # Identities start at 1; skip the round trip for anything lower.
        if book_id < 1:
            raise RecordNotFoundError()

        async def work() -> BookRecord:
            result = await self._session.execute(
                select(Book)
                .where(Book.id == book_id)
                .execution_options(populate_existing=True)
            )
            book = result.scalar_one_or_none()
            if book is None:
                raise RecordNotFoundError()
            return BookRecord.model_validate(book)

        return await self._run("book_get", work)

    async def update(self, book: BookRecord) -> int:
        """Write ``book`` if its version is still current. Returns the new version."""
        _check(book, self._current_year)

        async def work() -> int:
            result = await self._session.execute(
                update(Book)
                .where(Book.id == book.id, Book.version == book.version)
                .values(
                    title=book.title,
                    author=book.author,
                    year=book.year,
                    price=book.price,
                    version=Book.version + 1,
                )
                .returning(Book.version)
                .execution_options(synchronize_session=False)
            )
            new_version = result.scalar_one_or_none()
            if new_version is None:
                raise EditConflictError()

            await self._session.execute(
                delete(BookGenre)
                .where(BookGenre.book_id == book.id)
                .execution_options(synchronize_session=False)
            )
            await self._session.execute(
                insert(BookGenre),
                [
                    {"book_id": book.id, "genre": genre, "position": i}
                    for i, genre in enumerate(book.genres)
                ],
            )
            return new_version

        try:
            new_version = await self._run("book_update", work, write=True)
        except EditConflictError:
            logger.info("book_edit_conflict", book_id=book.id, version=book.version)
            raise

        book.version = new_version
        logger.info("book_updated", book_id=book.id, version=new_version)
        return new_version

    async def delete(self, book_id: int) -> None:
        if book_id < 1:
            raise RecordNotFoundError()

        async def work() -> None:
            await self._session.execute(
                delete(BookGenre)
                .where(BookGenre.book_id == book_id)
                .execution_options(synchronize_session=False)
            )
            result = await self._session.execute(
                delete(Book)
                .where(Book.id == book_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError()

        await self._run("book_delete", work, write=True)
        logger.info("book_deleted", book_id=book_id)

    async def list_books(
        self,
        title: str,
        genres: list[str],
        filters: Filters,
    ) -> tuple[list[BookRecord], Metadata]:
        v = Validator()
        validate_filters(v, filters)
        if not v.valid:
            raise ValidationError(v.errors)

        column = BOOK_SORT_COLUMNS.get(filters.sort_column())
        if column is None:
            raise RuntimeError(f"no column mapped for sort token {filters.sort!r}")
        ordering = column.desc() if filters.sort_direction() == "DESC" else column.asc()
        conditions = self._conditions(title, genres)

        async def work() -> tuple[list[BookRecord], int]:
            total_records = func.count().over().label("total_records")
            result = await self._session.execute(
                select(Book, total_records)
                .where(*conditions)
                .order_by(ordering, Book.id.asc())
                .limit(filters.limit)
                .offset(filters.offset)
                .execution_options(populate_existing=True)
            )
            rows = result.all()
            if rows:
                return [BookRecord.model_validate(book) for book, _ in rows], rows[0].total_records
            if filters.offset == 0:
                return [], 0
            # Past the last page: the window count is empty, count the matches directly.
            total = await self._session.scalar(
                select(func.count()).select_from(Book).where(*conditions)
            )
            return [], total or 0

        books, total = await self._run("book_list", work)
        return books, calculate_metadata(total, filters.page, filters.page_size)

    def _conditions(self, title: str, genres: list[str]) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []

        if title.strip():
            conditions.append(self._title_match(title))

        wanted = sorted(set(genres))
        if wanted:
            having_all = (
                select(BookGenre.book_id)
                .where(BookGenre.genre.in_(wanted))
                .group_by(BookGenre.book_id)
                .having(func.count(BookGenre.genre) == len(wanted))
            )
            conditions.append(Book.id.in_(having_all))

        return conditions

    def _title_match(self, title: str) -> ColumnElement[bool]:
        if self.dialect == "postgresql":
            config = literal_column("'simple'")
            return func.to_tsvector(config, Book.title).bool_op("@@")(
                func.plainto_tsquery(config, title)
            )
        lowered = func.lower(Book.title)
        return and_(*(lowered.contains(term, autoescape=True) for term in title.lower().split()))
