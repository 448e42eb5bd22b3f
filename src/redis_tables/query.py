"""Traversal context for loading relations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class QueryHelper:
    """Visited model names for one relation-loading branch.

    Created by the top-level ``get`` (seeded with the root model) and passed
    down every recursive ``get``/``list_detail`` call. Sibling relations on
    one instance share and extend the same history.
    """

    def __init__(self, origin: Any) -> None:
        """Initialize from the root instance, model class or model name."""
        if isinstance(origin, str):
            name = origin
        elif isinstance(origin, type):
            name = origin.__name__
        else:
            name = type(origin).__name__
        self.origin = origin
        self.history: list[str] = [name]

    @classmethod
    def is_not_cycle(cls, model_name: str, query_helper: QueryHelper | None) -> bool:
        """Check a relation target and record it as visited.

        Without a helper there is nothing to check against and every relation
        is followed. A name already in the history is a cycle and returns
        False; otherwise the name is appended and True is returned.
        """
        if not isinstance(query_helper, cls):
            return True
        if model_name in query_helper.history:
            return False
        query_helper.history.append(model_name)
        return True

    def __contains__(self, model_name: str) -> bool:
        return model_name in self.history

    def __repr__(self) -> str:
        return f"QueryHelper({' -> '.join(self.history)})"


class RelationState(Enum):
    """Outcome of loading one relation field."""

    UNRESOLVED = "unresolved"
    ONE = "one"
    MANY = "many"
    CYCLE = "cycle"


@dataclass
class Relation:
    """Loaded state of a relation field on one instance.

    ``value`` is the related instance for ONE, a list of instances for MANY
    and None otherwise.
    """

    state: RelationState = RelationState.UNRESOLVED
    value: Any = None

    @property
    def is_loaded(self) -> bool:
        return self.state in (RelationState.ONE, RelationState.MANY)
