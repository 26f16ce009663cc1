"""Cart routes. Every operation acts on the authenticated user's cart."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookshop.auth.dependencies import get_current_user
from bookshop.database import get_db
from bookshop.schemas.cart import CartAdd, CartEntryRecord, CartEntryRef, OrderedBooksResponse
from bookshop.services.cart_store import CartStore

router = APIRouter(prefix="/v1/cart", tags=["Cart"])


@router.post("", response_model=CartEntryRecord, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    data: CartAdd,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    entry = await CartStore(db).add_entry(current_user["email"], data.book_id, data.quantity)
    response.headers["Location"] = f"/v1/cart/entries/{entry.id}"
    return entry


@router.delete("")
async def remove_from_cart(
    data: CartEntryRef,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    await CartStore(db).remove_entry(current_user["email"], data.book_id, data.id)
    return {"message": "book successfully deleted from the cart"}


@router.post("/order", response_model=CartEntryRecord)
async def order_book(
    data: CartEntryRef,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Confirm the order of one cart entry. Repeating the call is harmless."""
    return await CartStore(db).confirm_order(current_user["email"], data.book_id, data.id)


@router.get("", response_model=OrderedBooksResponse)
async def list_books_in_carts(
    db: AsyncSession = Depends(get_db),
    _user: dict = Depends(get_current_user),
):
    """Every book that sits in some cart, by title."""
    return OrderedBooksResponse(books=await CartStore(db).list_ordered_books())


@router.get("/entries", response_model=list[CartEntryRecord])
async def list_my_entries(
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    return await CartStore(db).list_entries(current_user["email"])
