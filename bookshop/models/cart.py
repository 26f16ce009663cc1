"""Cart entry ORM model and the running quantity counter."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    event,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookshop.database import Base

COUNTER_ROW_ID = 1


class CartEntry(Base):
    __tablename__ = "cart_entries"
    __table_args__ = (
        CheckConstraint("quantity BETWEEN 1 AND 20", name="cart_entries_quantity_check"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Checked when the entry is added; carts keep their rows if the book goes away.
    book_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    books: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ordered: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<CartEntry id={self.id} email={self.email} book={self.book_id} ordered={self.ordered}>"


class CartCounter(Base):
    """Single-row running total of every quantity ever added to any cart."""

    __tablename__ = "cart_counters"

    id: Mapped[int] = mapped_column(primary_key=True)
    total_quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")


@event.listens_for(CartCounter.__table__, "after_create")
def _seed_counter(target, connection, **kw) -> None:
    connection.execute(
        text("INSERT INTO cart_counters (id, total_quantity) VALUES (:id, 0)"),
        {"id": COUNTER_ROW_ID},
    )
