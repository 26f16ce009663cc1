"""Field-error accumulator used by every input rule in the service."""

from __future__ import annotations

from typing import Hashable, Iterable

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

_email_adapter = TypeAdapter(EmailStr)


class Validator:
    """Collects one message per field without stopping at the first failure."""

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        # First failure per field wins.
        self.errors.setdefault(key, message)

    def check(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_error(key, message)


def permitted_value(value: Hashable, *permitted: Hashable) -> bool:
    return value in permitted


def valid_email(value: str) -> bool:
    """Syntax check via email-validator; no DNS lookups."""
    try:
        _email_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def unique(values: Iterable[Hashable]) -> bool:
    values = list(values)
    return len(set(values)) == len(values)
