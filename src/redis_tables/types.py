"""Field and model definitions for the redis_tables library."""

from __future__ import annotations

from dataclasses import dataclass, field
from dataclasses import fields as dataclass_fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from redis_tables.table import Table


class FieldType(Enum):
    """Value types a field can hold on the wire."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"


class RelationKind(Enum):
    """Cardinality of a relation field."""

    ONE = "one"
    MANY = "many"


# camelCase spellings accepted in field declarations
_FIELD_ALIASES: dict[str, str] = {
    "isRequired": "is_required",
    "isPrivate": "is_private",
    "localKey": "local_key",
    "remoteKey": "remote_key",
}


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of one field in a model schema."""

    type: FieldType | None = None
    is_required: bool = False
    default: Any = None  # value or zero-argument callable
    always: bool = False
    min: float | None = None
    max: float | None = None
    is_private: bool = False
    model: str | None = None
    rel: RelationKind | None = None
    local_key: str | None = None
    remote_key: str | None = None

    def __post_init__(self) -> None:
        # Accept the plain string spellings ("string", "many", ...)
        if isinstance(self.type, str):
            object.__setattr__(self, "type", FieldType(self.type))
        if isinstance(self.rel, str):
            object.__setattr__(self, "rel", RelationKind(self.rel))
        if self.model is not None and self.rel is None:
            raise ValueError(f"Relation to '{self.model}' needs rel='one' or rel='many'")
        if self.rel is RelationKind.MANY and not self.remote_key:
            raise ValueError(f"Relation to '{self.model}' with rel='many' needs a remote_key")

    @classmethod
    def from_dict(cls, spec: Mapping[str, Any], name: str | None = None) -> FieldSpec:
        """Build a FieldSpec from a mapping using snake_case or camelCase names.

        Raises ValueError naming the field and option when the mapping holds
        an option FieldSpec does not know.
        """
        known = {f.name for f in dataclass_fields(cls)}
        kwargs = {}
        for option, value in spec.items():
            attr = _FIELD_ALIASES.get(option, option)
            if attr not in known:
                raise ValueError(f"Field '{name or '?'}' has unknown option '{option}'")
            kwargs[attr] = value
        return cls(**kwargs)

    @property
    def is_relation(self) -> bool:
        return self.model is not None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def default_value(self) -> Any:
        """Return the default, invoking it when it is a producer."""
        if callable(self.default):
            return self.default()
        return self.default


@dataclass
class ModelSchema:
    """The key field and ordered field map of one model."""

    key: str
    fields: dict[str, FieldSpec] = field(default_factory=dict)
    # attribute names a field may not shadow on model instances
    reserved: frozenset[str] = field(default=frozenset(), repr=False, compare=False)

    def __post_init__(self) -> None:
        self.fields = {
            name: spec if isinstance(spec, FieldSpec) else FieldSpec.from_dict(spec, name)
            for name, spec in self.fields.items()
        }
        if self.key not in self.fields:
            raise ValueError(f"Key field '{self.key}' is not declared in the field map")
        clashes = [name for name in self.fields if name in self.reserved]
        if clashes:
            raise ValueError(f"Field names shadow model attributes: {', '.join(clashes)}")

    def get_field(self, name: str) -> FieldSpec | None:
        """Get a field by name."""
        return self.fields.get(name)

    @property
    def relations(self) -> list[tuple[str, FieldSpec]]:
        """Relation fields in declaration order."""
        return [(name, spec) for name, spec in self.fields.items() if spec.is_relation]

    @property
    def private_fields(self) -> set[str]:
        return {name for name, spec in self.fields.items() if spec.is_private}


class ModelRegistry:
    """Registry of the models declared against one schema."""

    def __init__(self) -> None:
        self._models: dict[str, type[Table]] = {}

    def register(self, model: type[Table]) -> None:
        """Register a model class under its name.

        Registering the same class again is a no-op; a different class under
        a name already taken raises ValueError.
        """
        existing = self._models.get(model.__name__)
        if existing is not None and existing is not model:
            raise ValueError(f"Model '{model.__name__}' is already registered")
        self._models[model.__name__] = model

    def get(self, name: str) -> type[Table] | None:
        """Get a model by name."""
        return self._models.get(name)

    def get_or_raise(self, name: str) -> type[Table]:
        """Get a model by name, raising UnknownModel if not registered."""
        from redis_tables.errors import UnknownModel

        model = self._models.get(name)
        if model is None:
            raise UnknownModel(name)
        return model

    def list_models(self) -> list[str]:
        """List all registered model names."""
        return list(self._models.keys())

    def __getitem__(self, name: str) -> type[Table]:
        return self._models[name]

    def __contains__(self, name: str) -> bool:
        return name in self._models

    def __len__(self) -> int:
        return len(self._models)
