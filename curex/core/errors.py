# FILE: curex/core/errors.py
from __future__ import annotations


class InsufficientStockError(ValueError):
    """Requested quantity exceeds what is on the shelf."""

    def __init__(self, available: int, requested: int, message: str | None = None):
        self.available = available
        self.requested = requested
        super().__init__(
            message or
            f"Insufficient stock. Available: {available}, Requested: {requested}")


class InvalidStateError(ValueError):
    """Operation not allowed in the record's current status."""


class NotFoundError(LookupError):
    """Referenced row does not exist (or is not visible to the caller)."""


class FieldValidationError(Exception):
    """
    Request is well-formed but fails a rule that needs the database
    (duplicate e-mail, wrong current password...). Rendered as 422.
    """

    def __init__(self, message: str, errors: dict[str, list[str]]):
        self.message = message
        self.errors = errors
        super().__init__(message)
