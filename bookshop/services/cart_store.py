"""
Cart store: entries move from open to ordered, never back.

Prices and titles are copied from the book when an entry is added; later book
edits do not reach existing entries. The running quantity total is bumped by a
single atomic UPDATE inside the same transaction as the entry insert.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import delete, select, update

from bookshop.errors import PersistenceError, RecordNotFoundError, ValidationError
from bookshop.models.book import Book
from bookshop.models.cart import COUNTER_ROW_ID, CartCounter, CartEntry
from bookshop.schemas.book import BookRecord
from bookshop.schemas.cart import CartEntryRecord
from bookshop.services.base import SessionStore
from bookshop.validator import Validator, valid_email

logger = structlog.get_logger()

MAX_QUANTITY = 20


def validate_cart_entry(v: Validator, email: str, quantity: int) -> None:
    v.check(email != "", "email", "must be provided")
    v.check(valid_email(email), "email", "must be a valid email address")
    v.check(quantity > 0, "quantity", "must be greater than zero")
    v.check(quantity <= MAX_QUANTITY, "quantity", "can not be greater than twenty")


class CartStore(SessionStore):
    async def add_entry(self, email: str, book_id: int, quantity: int) -> CartEntryRecord:
        v = Validator()
        validate_cart_entry(v, email, quantity)
        if not v.valid:
            raise ValidationError(v.errors)
        if book_id < 1:
            raise RecordNotFoundError()

        async def work() -> CartEntryRecord:
            book = await self._session.scalar(
                select(Book).where(Book.id == book_id).execution_options(populate_existing=True)
            )
            if book is None:
                raise RecordNotFoundError()

            running_total = await self._bump_counter(quantity)
            entry = CartEntry(
                email=email,
                book_id=book.id,
                books=[book.title],
                quantity=quantity,
                total_price=quantity * book.price,
                total_quantity=running_total,
                ordered=False,
            )
            self._session.add(entry)
            await self._session.flush()
            return CartEntryRecord.model_validate(entry)

        record = await self._run("cart_add", work, write=True)
        logger.info("cart_entry_added", entry_id=record.id, book_id=book_id, quantity=quantity)
        return record

    async def _bump_counter(self, quantity: int) -> int:
        running_total = await self._session.scalar(
            update(CartCounter)
            .where(CartCounter.id == COUNTER_ROW_ID)
            .values(total_quantity=CartCounter.total_quantity + quantity)
            .returning(CartCounter.total_quantity)
            .execution_options(synchronize_session=False)
        )
        if running_total is None:
            logger.error("cart_counter_missing", counter_id=COUNTER_ROW_ID)
            raise PersistenceError("cart_add")
        return running_total

    async def remove_entry(self, email: str, book_id: int, entry_id: int) -> None:
        """Delete the entry matching all three keys, ordered or not."""

        async def work() -> None:
            result = await self._session.execute(
                delete(CartEntry)
                .where(
                    CartEntry.email == email,
                    CartEntry.book_id == book_id,
                    CartEntry.id == entry_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError()

        await self._run("cart_remove", work, write=True)
        logger.info("cart_entry_removed", entry_id=entry_id, book_id=book_id)

    async def confirm_order(self, email: str, book_id: int, entry_id: int) -> CartEntryRecord:
        """Mark the entry ordered. Confirming an ordered entry again is a no-op."""

        async def work() -> CartEntryRecord:
            entry = await self._session.scalar(
                update(CartEntry)
                .where(
                    CartEntry.email == email,
                    CartEntry.book_id == book_id,
                    CartEntry.id == entry_id,
                )
                .values(ordered=True)
                .returning(CartEntry)
                .execution_options(populate_existing=True)
            )
            if entry is None:
                raise RecordNotFoundError()
            return CartEntryRecord.model_validate(entry)

        record = await self._run("cart_order", work, write=True)
        logger.info("cart_entry_ordered", entry_id=entry_id, book_id=book_id)
        return record

    async def list_ordered_books(self) -> list[BookRecord]:
        """Distinct books referenced by any cart entry, by title."""

        async def work() -> list[BookRecord]:
            result = await self._session.scalars(
                select(Book)
                .where(Book.id.in_(select(CartEntry.book_id)))
                .order_by(Book.title.asc(), Book.id.asc())
                .execution_options(populate_existing=True)
            )
            return [BookRecord.model_validate(book) for book in result]

        return await self._run("cart_list_books", work)

    async def list_entries(self, email: str) -> list[CartEntryRecord]:
        async def work() -> list[CartEntryRecord]:
            result = await self._session.scalars(
                select(CartEntry)
                .where(CartEntry.email == email)
                .order_by(CartEntry.id.desc())
                .execution_options(populate_existing=True)
            )
            return [CartEntryRecord.model_validate(entry) for entry in result]

        return await self._run("cart_list_entries", work)

    async def total_quantity(self) -> int:
        async def work() -> int:
            total: Optional[int] = await self._session.scalar(
                select(CartCounter.total_quantity).where(CartCounter.id == COUNTER_ROW_ID)
            )
            return total or 0

        return await self._run("cart_total_quantity", work)
