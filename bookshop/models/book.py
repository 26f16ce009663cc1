"""Book ORM model and its genre association rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookshop.database import Base


class Book(Base):
    __tablename__ = "books"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    genre_links: Mapped[list[BookGenre]] = relationship(
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="BookGenre.position",
        lazy="selectin",
    )

    @property
    def genres(self) -> list[str]:
        return [link.genre for link in self.genre_links]

    def __repr__(self) -> str:
        return f"<Book id={self.id} title={self.title!r} version={self.version}>"


class BookGenre(Base):
    __tablename__ = "book_genres"

    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id", ondelete="CASCADE"), primary_key=True
    )
    genre: Mapped[str] = mapped_column(String(100), primary_key=True, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    book: Mapped[Book] = relationship(back_populates="genre_links")


def genre_rows(genres: list[str]) -> list[BookGenre]:
    return [BookGenre(genre=genre, position=i) for i, genre in enumerate(genres)]
