"""Initial migration — create books, book_genres, cart_entries and cart_counters.

Revision ID: 001
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Books table
    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("author", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("price", sa.BigInteger(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_books_title", "books", ["title"])
    op.execute(
        "CREATE INDEX IF NOT EXISTS books_title_fts_idx "
        "ON books USING GIN (to_tsvector('simple', title))"
    )

    # Genre association table
    op.create_table(
        "book_genres",
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("genre", sa.String(100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("book_id", "genre"),
        sa.ForeignKeyConstraint(["book_id"], ["books.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_book_genres_genre", "book_genres", ["genre"])

    # Cart entries table
    op.create_table(
        "cart_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("books", sa.JSON(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.BigInteger(), nullable=False),
        sa.Column("total_quantity", sa.BigInteger(), nullable=False),
        sa.Column("ordered", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity BETWEEN 1 AND 20", name="cart_entries_quantity_check"),
    )
    op.create_index("ix_cart_entries_email", "cart_entries", ["email"])
    op.create_index("ix_cart_entries_book_id", "cart_entries", ["book_id"])

    # Running quantity counter (single row)
    counters = op.create_table(
        "cart_counters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("total_quantity", sa.BigInteger(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.bulk_insert(counters, [{"id": 1, "total_quantity": 0}])


def downgrade() -> None:
    op.drop_table("cart_counters")
    op.drop_table("cart_entries")
    op.drop_table("book_genres")
    op.drop_index("books_title_fts_idx", table_name="books")
    op.drop_table("books")
