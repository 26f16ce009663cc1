"""Global exception handlers for store errors, request validation, catch-all."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bookshop.errors import BookshopError, PersistenceError

logger = structlog.get_logger()


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(BookshopError)
    async def bookshop_error_handler(request: Request, exc: BookshopError):
        if isinstance(exc, PersistenceError):
            logger.error("request_failed", path=request.url.path, code=exc.code, operation=exc.operation)
        else:
            logger.info("request_rejected", path=request.url.path, code=exc.code)
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields: dict[str, str] = {}
        for error in exc.errors():
            key = ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query", "header"))
            fields.setdefault(key or "body", error["msg"])
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "the request contains invalid fields",
                    "fields": fields,
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all that never leaks internal details."""
        logger.exception("unhandled_exception", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "the server encountered a problem and could not process your request",
                }
            },
        )
