"""Exception types raised by redis_tables.

Every error carries ``name``, ``message`` and ``status`` attributes so callers
can branch on ``error.name`` the same way for all of them. Transport errors
from the Redis client are never wrapped and propagate as raised.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "TableError",
    "ValidationError",
    "EntryNotFound",
    "EntryNameUsed",
    "UnknownModel",
]


class TableError(Exception):
    """Base class for errors raised by table operations."""

    status = 500

    def __init__(self, message: Any) -> None:
        super().__init__(message)
        self.message = message

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "message": self.message, "status": self.status}


class ValidationError(TableError, ValueError):
    """One or more fields failed schema validation.

    ``message`` is the complete list of offending fields, each a
    ``{"key": field_name, "message": text}`` mapping, in declaration order.
    """

    status = 422

    def __init__(self, errors: list[dict[str, str]]) -> None:
        super().__init__(list(errors))

    @property
    def keys(self) -> list[dict[str, str]]:
        return list(self.message)

    def __str__(self) -> str:
        return "; ".join(entry["message"] for entry in self.message)


class EntryNotFound(TableError, LookupError):
    """No record is stored under the requested key."""

    status = 404

    def __init__(self, model_name: str, key: Any) -> None:
        super().__init__(f"{model_name}:{key} does not exist")
        self.model_name = model_name
        self.key = key


class EntryNameUsed(TableError, ValueError):
    """A record already uses the requested key value."""

    status = 409

    def __init__(self, model_name: str, key_field: str, key: Any) -> None:
        message = f"{model_name}:{key} already exists"
        super().__init__(message)
        self.model_name = model_name
        self.key = key
        self.keys = [{"key": key_field, "message": message}]


class UnknownModel(TableError, LookupError):
    """A relation names a model that has not been registered."""

    status = 404

    def __init__(self, model_name: str) -> None:
        super().__init__(f"Model '{model_name}' is not registered")
        self.model_name = model_name
