"""Table engine: models persisted as Redis hashes indexed by a member set."""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Mapping

from redis_tables.errors import (
    EntryNameUsed,
    EntryNotFound,
    TableError,
    UnknownModel,
    ValidationError,
)
from redis_tables.query import QueryHelper, Relation, RelationState
from redis_tables.storage import Store
from redis_tables.types import FieldSpec, ModelRegistry, ModelSchema, RelationKind
from redis_tables.validate import (
    is_absent,
    parse_from_string,
    parse_to_string,
    process_keys,
)

logger = logging.getLogger(__name__)


class Table:
    """Base type for models stored in Redis.

    A model subclass declares its key field and field map::

        class User(Table):
            _key = "username"
            _keymap = {
                "username": {"type": "string", "isRequired": True, "min": 3},
                "email": {"type": "string"},
                "password": {"type": "string", "isPrivate": True},
            }

    Each record is a hash at ``<prefix><Model>_<key>`` and every key of a model
    is a member of the set ``<prefix><Model>``. Use the ``Table`` returned by
    ``setup_table()`` (or ``Schema.Table``) as the base, not this class
    directly; that subclass carries the store and the model registry.
    """

    _key: ClassVar[str] = ""
    _keymap: ClassVar[Mapping[str, FieldSpec | Mapping[str, Any]] | None] = None
    _schema: ClassVar[ModelSchema | None] = None

    store: ClassVar[Store | None] = None
    client: ClassVar[Any] = None
    models: ClassVar[ModelRegistry | None] = None
    schema: ClassVar[Any] = None

    errors: ClassVar[dict[str, type[TableError]]] = {
        "ValidationError": ValidationError,
        "EntryNotFound": EntryNotFound,
        "EntryNameUsed": EntryNameUsed,
        "UnknownModel": UnknownModel,
    }

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        keymap = cls.__dict__.get("_keymap")
        if keymap is not None:
            cls._schema = ModelSchema(
                key=cls._key, fields=dict(keymap), reserved=_RESERVED_NAMES
            )

    def __init__(self, data: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._relations: dict[str, Relation] = {}
        self._extra: dict[str, Any] = {}
        declared = self._schema.fields if self._schema is not None else {}
        for name, value in {**(data or {}), **fields}.items():
            if name in declared:
                setattr(self, name, value)
            else:
                self._extra[name] = value

    # -- class helpers --------------------------------------------------

    @classmethod
    def _model_schema(cls) -> ModelSchema:
        if cls._schema is None:
            raise TypeError(f"{cls.__name__} does not declare a _keymap")
        return cls._schema

    @classmethod
    def _store(cls) -> Store:
        if cls.store is None:
            raise RuntimeError(
                f"{cls.__name__} is not bound to a store; derive it from setup_table()"
            )
        return cls.store

    @classmethod
    def _index(cls, index: Any) -> Any:
        """Reduce an index argument to the raw key value."""
        if isinstance(index, Table):
            return getattr(index, cls._key, None)
        if isinstance(index, Mapping):
            return index.get(cls._key)
        return index

    @classmethod
    def _member_key(cls) -> str:
        return cls._store().member_key(cls.__name__)

    @classmethod
    def _record_key(cls, key: Any) -> str:
        return cls._store().record_key(cls.__name__, parse_to_string(key))

    @classmethod
    def _require_key(cls, key: Any) -> None:
        if is_absent(key) or key == "":
            raise ValidationError(
                [{"key": cls._key, "message": f"{cls._key} is required"}]
            )

    # -- registry -------------------------------------------------------

    @classmethod
    def register(cls, model: type[Table] | None = None) -> type[Table]:
        """Add a model to the registry by its class name.

        Without an argument the calling class registers itself. Returns the
        model so this can be used as a class decorator.
        """
        model = model or cls
        cls._registry().register(model)
        return model

    # -- reads ----------------------------------------------------------

    @classmethod
    async def get(cls, index: Any, query_helper: QueryHelper | None = None) -> Table:
        """Load one record and its relations.

        Args:
            index: The key value, or a mapping/instance holding the key field.
            query_helper: Traversal context from an enclosing load. A new one
                seeded with this model is used when omitted.

        Raises:
            EntryNotFound: Nothing is stored under the key.
        """
        schema = cls._model_schema()
        key = cls._index(index)

        result = await cls._store().read_hash(cls._record_key(key))
        if not result:
            raise EntryNotFound(cls.__name__, key)

        instance = cls(parse_from_string(schema.fields, result))
        await instance.build_relations(query_helper)
        return instance

    @classmethod
    async def exists(cls, index: Any) -> bool:
        """Return whether a key is a member of this model."""
        key = cls._index(index)
        return await cls._store().is_member(cls._member_key(), parse_to_string(key))

    @classmethod
    async def list(cls) -> list[str]:
        """Return every key of this model, in no particular order."""
        return await cls._store().members(cls._member_key())

    @classmethod
    async def list_detail(
        cls,
        options: Mapping[str, Any] | None = None,
        query_helper: QueryHelper | None = None,
    ) -> list[Table]:
        """Load every record, keeping those equal to all pairs in ``options``.

        This scans the whole member set; there is no secondary index. A field
        already resolved to a related instance matches on that instance's key.
        """
        out = []
        for key in await cls.list():
            instance = await cls.get(key, query_helper)
            if not options or all(
                _match_value(instance._field_value(name)) == value
                for name, value in options.items()
            ):
                out.append(instance)
        return out

    findall = list_detail

    # -- writes ---------------------------------------------------------

    @classmethod
    async def create(cls, data: Mapping[str, Any]) -> Table:
        """Validate and store a new record, returning it as reloaded.

        Raises:
            ValidationError: Fields failed validation or the key is empty.
            EntryNameUsed: The key value is already stored.
        """
        schema = cls._model_schema()
        store = cls._store()

        data = process_keys(schema.fields, data)
        key = data.get(cls._key)
        cls._require_key(key)

        if await cls.exists(key):
            raise EntryNameUsed(cls.__name__, cls._key, key)

        await store.add_members(cls._member_key(), parse_to_string(key))

        record_key = cls._record_key(key)
        for name, value in data.items():
            if is_absent(value):
                continue
            await store.write_field(record_key, name, parse_to_string(value))

        logger.debug("Created %s:%s", cls.__name__, key)
        return await cls.get(key)

    async def update(self, data: Mapping[str, Any]) -> Table:
        """Apply a partial change to this record in place.

        Changing the key field moves the key between member sets and renames
        the record hash before the remaining fields are written.

        Raises:
            ValidationError: Supplied fields failed validation.
            EntryNameUsed: The new key value is already stored.
        """
        cls = type(self)
        schema = cls._model_schema()
        store = cls._store()

        data = process_keys(schema.fields, data, partial=True)

        current = getattr(self, cls._key)
        if cls._key in data:
            new_key = data[cls._key]
            cls._require_key(new_key)
            if new_key != current:
                if await cls.exists(new_key):
                    raise EntryNameUsed(cls.__name__, cls._key, new_key)

                member_key = cls._member_key()
                await store.remove_members(member_key, parse_to_string(current))
                await store.add_members(member_key, parse_to_string(new_key))
                await store.rename(cls._record_key(current), cls._record_key(new_key))
                logger.debug("Renamed %s:%s to %s", cls.__name__, current, new_key)

        for name, value in data.items():
            setattr(self, name, value)
            await store.write_field(
                cls._record_key(getattr(self, cls._key)), name, parse_to_string(value)
            )

        return self

    async def remove(self) -> Table:
        """Delete this record. The instance must not be used for writes after."""
        cls = type(self)
        store = cls._store()
        key = getattr(self, cls._key)

        await store.remove_members(cls._member_key(), parse_to_string(key))
        await store.delete(cls._record_key(key))

        logger.debug("Removed %s:%s", cls.__name__, key)
        return self

    # -- relations ------------------------------------------------------

    async def build_relations(self, query_helper: QueryHelper | None = None) -> None:
        """Load every relation field declared on this model.

        A relation whose target model is already in the traversal history is
        cut and left unset. A relation that fails to load (missing record,
        unregistered model, stored value that does not parse) is left unset
        as well. Transport errors propagate.
        """
        cls = type(self)
        if query_helper is None:
            query_helper = QueryHelper(self)

        for name, spec in cls._model_schema().relations:
            try:
                remote = cls._registry().get_or_raise(spec.model)
                if not QueryHelper.is_not_cycle(remote.__name__, query_helper):
                    self._relations[name] = Relation(RelationState.CYCLE)
                    logger.debug(
                        "Skipped %s.%s, %s already loaded in %r",
                        cls.__name__, name, remote.__name__, query_helper,
                    )
                    continue

                if spec.rel is RelationKind.ONE:
                    local = getattr(self, name, None)
                    if is_absent(local):
                        local = getattr(self, spec.local_key or cls._key, None)
                    value = await remote.get(local, query_helper)
                    self._relations[name] = Relation(RelationState.ONE, value)
                else:
                    local = getattr(self, spec.local_key or cls._key, None)
                    value = await remote.list_detail({spec.remote_key: local}, query_helper)
                    self._relations[name] = Relation(RelationState.MANY, value)
                setattr(self, name, value)
            except (TableError, ValueError) as error:
                self._relations[name] = Relation(RelationState.UNRESOLVED)
                logger.debug("Relation %s.%s not loaded: %s", cls.__name__, name, error)

    @classmethod
    def _registry(cls) -> ModelRegistry:
        if cls.models is None:
            raise RuntimeError(
                f"{cls.__name__} has no model registry; derive it from setup_table()"
            )
        return cls.models

    def relation(self, name: str) -> Relation:
        """Return the load state of a relation field."""
        return self._relations.get(name, Relation())

    def extra(self) -> dict[str, Any]:
        """Return stored fields the model does not declare."""
        return dict(self._extra)

    def _field_value(self, name: str) -> Any:
        if name in self._extra:
            return self._extra[name]
        return getattr(self, name, None) if name in self._model_schema().fields else None

    # -- output ---------------------------------------------------------

    def to_json(self) -> dict[str, Any]:
        """Return the stored and loaded fields without private ones."""
        schema = type(self)._model_schema()
        private = schema.private_fields
        out = {
            name: _json_value(getattr(self, name))
            for name in schema.fields
            if name not in private and name in vars(self)
        }
        out.update(self._extra)
        return out

    def to_string(self) -> Any:
        """Return the key field value."""
        return getattr(self, type(self)._key, None)

    def __str__(self) -> str:
        return str(self.to_string())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_string()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return type(self) is type(other) and self.to_string() == other.to_string()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.to_string()))


def _match_value(value: Any) -> Any:
    if isinstance(value, Table):
        return value.to_string()
    return value


def _json_value(value: Any) -> Any:
    if isinstance(value, Table):
        return value.to_json()
    if isinstance(value, list):
        return [_json_value(item) for item in value]
    return value


_RESERVED_NAMES = frozenset(
    name for name in dir(Table) if not name.startswith("__")
) | {"_relations", "_extra"}
