"""
Exception types raised by the record/view layer.

Store failures are not wrapped: ``redis.exceptions.RedisError`` subclasses
reach the caller unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from redmodel.domain.schema import FieldError


class ConfigurationError(ValueError):
    """A programmer error: missing client, unsupported query, bad view options."""


class ValidationFailed(Exception):
    """
    Raised by ``Record.save()`` when properties violate the schema.

    No store command has been issued when this is raised.
    """

    def __init__(self, errors: List["FieldError"]) -> None:
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Validation failed: {summary}")


__all__ = ["ConfigurationError", "ValidationFailed"]
