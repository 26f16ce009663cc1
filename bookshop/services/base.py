"""
Shared plumbing for the stores: per-operation deadline, single commit,
rollback on any failure, and translation of driver errors.

Each store call is one unit of work. Nothing is retried here; a
``PersistenceError`` is handed back to the caller, who may retry.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from prometheus_client import Histogram
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bookshop.config import get_settings
from bookshop.errors import BookshopError, PersistenceError, StoreTimeoutError

logger = structlog.get_logger()

T = TypeVar("T")

STORE_LATENCY = Histogram(
    "store_operation_seconds",
    "Latency of store operations against the database",
    ["operation"],
)


class SessionStore:
    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self._session = session
        self._timeout = timeout if timeout is not None else get_settings().store_timeout_seconds

    @property
    def dialect(self) -> str:
        return self._session.get_bind().dialect.name

    async def _run(
        self,
        operation: str,
        work: Callable[[], Awaitable[T]],
        *,
        write: bool = False,
    ) -> T:
        """Run ``work`` under the store deadline; commit it when ``write`` is set."""
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(self._unit(work, write), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            await self._rollback(operation)
            logger.error("store_timeout", operation=operation, timeout=self._timeout)
            raise StoreTimeoutError(operation) from exc
        except SQLAlchemyError as exc:
            await self._rollback(operation)
            logger.error("store_failure", operation=operation, error=type(exc).__name__)
            raise PersistenceError(operation) from exc
        except BookshopError:
            await self._rollback(operation)
            raise
        finally:
            STORE_LATENCY.labels(operation=operation).observe(time.perf_counter() - start)

    async def _unit(self, work: Callable[[], Awaitable[T]], write: bool) -> T:
        result = await work()
        if write:
            await self._session.commit()
        return result

    async def _rollback(self, operation: str) -> None:
        # A cancelled query can leave the connection busy; the caller still gets the typed error.
        try:
            await self._session.rollback()
        except SQLAlchemyError as exc:
            logger.warning("store_rollback_failed", operation=operation, error=type(exc).__name__)
