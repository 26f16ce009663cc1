"""
Error kinds raised by the stores.

Domain errors (validation, not found, edit conflict) are expected outcomes that
the HTTP layer turns into 4xx responses. Persistence errors are opaque: the
message never carries driver or SQL detail.
"""

from __future__ import annotations


class BookshopError(Exception):
    """Base exception for every error the stores raise on purpose."""

    code = "INTERNAL_ERROR"
    http_status = 500
    default_message = "the server encountered a problem and could not process your request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


# ── Domain errors ──

class ValidationError(BookshopError):
    """One or more fields broke an input rule. Carries field → message."""

    code = "VALIDATION_ERROR"
    http_status = 422
    default_message = "the request contains invalid fields"

    def __init__(self, errors: dict[str, str]):
        super().__init__()
        self.errors = dict(errors)

    def to_response(self) -> dict:
        body = super().to_response()
        body["error"]["fields"] = self.errors
        return body


class RecordNotFoundError(BookshopError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "the requested resource could not be found"


class EditConflictError(BookshopError):
    """Conditional write matched no row: the version is stale or the record is gone.

    The two cases are reported identically so a racing client cannot probe
    whether a record still exists.
    """

    code = "EDIT_CONFLICT"
    http_status = 409
    default_message = "unable to update the record due to an edit conflict, please try again"


# ── Infrastructure errors ──

class PersistenceError(BookshopError):
    code = "PERSISTENCE_ERROR"
    http_status = 500

    def __init__(self, operation: str):
        super().__init__()
        self.operation = operation


class StoreTimeoutError(PersistenceError):
    """The store did not answer within the operation deadline. Safe to retry."""

    code = "STORE_TIMEOUT"
    http_status = 503
    default_message = "the server is temporarily unable to handle the request, please retry"
