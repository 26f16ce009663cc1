"""Shared test configuration and fixtures."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

# Ensure the project root is on sys.path so `bookshop` resolves without installing
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Set test environment before importing the app
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'bookshop-unused.db'}",
)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from bookshop.auth.jwt_handler import create_access_token  # noqa: E402
from bookshop.database import Base, get_db  # noqa: E402
from bookshop.models import book, cart  # noqa: E402,F401
from bookshop.schemas.book import BookCreate  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh file-backed SQLite database per test; separate connections really contend."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookshop.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """FastAPI test client with the DB dependency pointed at the test database."""
    from bookshop.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token("admin@example.com", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    token = create_access_token("reader@example.com")
    return {"Authorization": f"Bearer {token}"}


def make_book(**overrides) -> BookCreate:
    data = {
        "title": "Dune",
        "author": "Herbert",
        "year": 1965,
        "genres": ["sci-fi"],
        "price": 1500,
    }
    data.update(overrides)
    return BookCreate(**data)
