"""Tests for the cart state machine."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from bookshop.errors import PersistenceError, RecordNotFoundError, ValidationError
from bookshop.models.cart import CartCounter, CartEntry
from bookshop.services.book_store import BookStore
from bookshop.services.cart_store import CartStore
from conftest import make_book

EMAIL = "a@x.com"


class TestAddEntry:
    @pytest.mark.asyncio
    async def test_prices_and_title_are_frozen_at_insert(self, db_session):
        books = BookStore(db_session)
        carts = CartStore(db_session)

        dune = await books.insert(make_book(price=1500))
        await books.update(dune.model_copy(update={"price": 1600}))
        dune = await books.get(dune.id)

        entry = await carts.add_entry(EMAIL, dune.id, 2)
        assert entry.total_price == 3200
        assert entry.books == ["Dune"]
        assert entry.ordered is False
        assert entry.quantity == 2
        assert entry.email == EMAIL

        await books.update(dune.model_copy(update={"price": 2000, "title": "Dune (Deluxe)"}))

        [stored] = await carts.list_entries(EMAIL)
        assert stored.total_price == 3200
        assert stored.books == ["Dune"]

    @pytest.mark.asyncio
    async def test_missing_book(self, db_session):
        carts = CartStore(db_session)
        with pytest.raises(RecordNotFoundError):
            await carts.add_entry(EMAIL, 424242, 1)
        with pytest.raises(RecordNotFoundError):
            await carts.add_entry(EMAIL, 0, 1)
        assert await carts.total_quantity() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -3, 21])
    async def test_quantity_out_of_range(self, db_session, quantity):
        dune = await BookStore(db_session).insert(make_book())
        with pytest.raises(ValidationError) as exc_info:
            await CartStore(db_session).add_entry(EMAIL, dune.id, quantity)
        assert set(exc_info.value.errors) == {"quantity"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["a..b@x.com", ".a@x.com", "a@b"])
    async def test_malformed_email_is_rejected(self, db_session, email):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        with pytest.raises(ValidationError) as exc_info:
            await carts.add_entry(email, dune.id, 1)
        assert exc_info.value.errors == {"email": "must be a valid email address"}
        assert await carts.total_quantity() == 0

    @pytest.mark.asyncio
    async def test_missing_counter_row_fails_without_adding(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        await db_session.execute(delete(CartCounter))
        await db_session.commit()

        carts = CartStore(db_session)
        with pytest.raises(PersistenceError):
            await carts.add_entry(EMAIL, dune.id, 1)
        assert await carts.list_entries(EMAIL) == []

    @pytest.mark.asyncio
    async def test_schema_enforces_quantity_range(self, db_session):
        db_session.add(
            CartEntry(
                email=EMAIL,
                book_id=1,
                books=["Dune"],
                quantity=25,
                total_price=100,
                total_quantity=25,
            )
        )
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_running_total_quantity(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        first = await carts.add_entry(EMAIL, dune.id, 2)
        second = await carts.add_entry("b@x.com", dune.id, 5)
        assert first.total_quantity == 2
        assert second.total_quantity == 7
        assert await carts.total_quantity() == 7

    @pytest.mark.asyncio
    async def test_concurrent_adds_never_lose_an_increment(self, db_session, session_factory):
        dune = await BookStore(db_session).insert(make_book())
        quantities = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]

        async def add(i: int, quantity: int):
            async with session_factory() as session:
                return await CartStore(session).add_entry(f"user{i}@x.com", dune.id, quantity)

        entries = await asyncio.gather(*(add(i, q) for i, q in enumerate(quantities)))

        assert await CartStore(db_session).total_quantity() == sum(quantities)
        # Every entry saw a distinct running total; the largest is the final sum.
        running = sorted(e.total_quantity for e in entries)
        assert len(set(running)) == len(quantities)
        assert running[-1] == sum(quantities)


class TestRemoveEntry:
    @pytest.mark.asyncio
    async def test_requires_matching_triple(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        entry = await carts.add_entry(EMAIL, dune.id, 1)

        with pytest.raises(RecordNotFoundError):
            await carts.remove_entry("other@x.com", dune.id, entry.id)
        with pytest.raises(RecordNotFoundError):
            await carts.remove_entry(EMAIL, dune.id + 1, entry.id)

        await carts.remove_entry(EMAIL, dune.id, entry.id)
        assert await carts.list_entries(EMAIL) == []

        with pytest.raises(RecordNotFoundError):
            await carts.remove_entry(EMAIL, dune.id, entry.id)

    @pytest.mark.asyncio
    async def test_ordered_entry_can_be_removed(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        entry = await carts.add_entry(EMAIL, dune.id, 1)
        await carts.confirm_order(EMAIL, dune.id, entry.id)
        await carts.remove_entry(EMAIL, dune.id, entry.id)
        assert await carts.list_entries(EMAIL) == []


class TestConfirmOrder:
    @pytest.mark.asyncio
    async def test_confirm_twice_is_harmless(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        entry = await carts.add_entry(EMAIL, dune.id, 3)

        first = await carts.confirm_order(EMAIL, dune.id, entry.id)
        second = await carts.confirm_order(EMAIL, dune.id, entry.id)

        assert first.ordered is True
        assert second.ordered is True
        assert second.total_price == entry.total_price
        [stored] = await carts.list_entries(EMAIL)
        assert stored.ordered is True

    @pytest.mark.asyncio
    async def test_unknown_entry(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        entry = await carts.add_entry(EMAIL, dune.id, 1)
        with pytest.raises(RecordNotFoundError):
            await carts.confirm_order("other@x.com", dune.id, entry.id)
        with pytest.raises(RecordNotFoundError):
            await carts.confirm_order(EMAIL, dune.id, entry.id + 100)


class TestListings:
    @pytest.mark.asyncio
    async def test_ordered_books_are_distinct_and_sorted_by_title(self, db_session):
        books = BookStore(db_session)
        carts = CartStore(db_session)
        dune = await books.insert(make_book(title="Dune"))
        emma = await books.insert(make_book(title="Emma", author="Austen", year=1815, genres=["romance"]))
        await books.insert(make_book(title="Persuasion", author="Austen", year=1817, genres=["romance"]))

        await carts.add_entry(EMAIL, emma.id, 1)
        await carts.add_entry(EMAIL, dune.id, 1)
        await carts.add_entry("b@x.com", dune.id, 4)

        listed = await carts.list_ordered_books()
        assert [b.title for b in listed] == ["Dune", "Emma"]

    @pytest.mark.asyncio
    async def test_entries_are_per_email_newest_first(self, db_session):
        dune = await BookStore(db_session).insert(make_book())
        carts = CartStore(db_session)
        first = await carts.add_entry(EMAIL, dune.id, 1)
        second = await carts.add_entry(EMAIL, dune.id, 2)
        await carts.add_entry("b@x.com", dune.id, 3)

        entries = await carts.list_entries(EMAIL)
        assert [e.id for e in entries] == [second.id, first.id]
