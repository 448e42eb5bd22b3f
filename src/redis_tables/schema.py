"""Connection-scoped schema: one store, one model registry, one Table base."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from redis.asyncio import Redis

from redis_tables.storage import Connection, Store
from redis_tables.table import Table
from redis_tables.types import ModelRegistry

logger = logging.getLogger(__name__)


class Schema:
    """Models declared against one Redis connection and key prefix.

    Each schema builds its own ``Table`` base class. Models derived from it
    share the schema's store and registry, so two schemas in one process can
    declare models with the same names without colliding.
    """

    def __init__(self, store: Store) -> None:
        """Initialize a schema.

        Args:
            store: Store adapter every model of this schema issues commands to.
        """
        self.store = store
        self.registry = ModelRegistry()
        self.Table: type[Table] = type(
            "Table",
            (Table,),
            {
                "__module__": Table.__module__,
                "__doc__": Table.__doc__,
                "store": store,
                "client": store.client,
                "models": self.registry,
                "schema": self,
            },
        )

    @classmethod
    def from_client(
        cls, client: Any, prefix: str = "", connection: Connection = None
    ) -> Schema:
        """Create a schema over a client the caller manages.

        Args:
            client: An asyncio Redis client returning ``str`` values.
            prefix: Text prepended to every key.
            connection: Optional awaitable that completes when the client is
                ready; awaited before the first command.
        """
        return cls(Store(client, prefix=prefix, connection=connection))

    @classmethod
    def connect(cls, conf: Mapping[str, Any] | None = None, prefix: str = "") -> Schema:
        """Create a schema with its own client built from ``conf``.

        ``conf`` is passed to ``redis.asyncio.Redis``; a ``url`` entry is
        passed to ``Redis.from_url`` instead. Responses are decoded to ``str``
        unless ``decode_responses`` is given. The connection is checked with
        PING before the first command.
        """
        options = {"decode_responses": True, **(conf or {})}
        url = options.pop("url", None)
        if url is not None:
            client = Redis.from_url(url, **options)
        else:
            client = Redis(**options)

        logger.debug("Connecting to Redis (prefix=%r)", prefix)
        store = Store(client, prefix=prefix, connection=client.ping, owns_client=True)
        return cls(store)

    @property
    def prefix(self) -> str:
        return self.store.prefix

    def get_model(self, name: str) -> type[Table]:
        """Get a registered model by name.

        Raises:
            UnknownModel: If no model is registered under the name.
        """
        return self.registry.get_or_raise(name)

    def list_models(self) -> list[str]:
        """List all registered model names."""
        return self.registry.list_models()

    async def aclose(self) -> None:
        """Close the Redis client if this schema created it."""
        await self.store.close()

    async def __aenter__(self) -> Schema:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


def setup_table(
    client: Any = None,
    conf: Mapping[str, Any] | None = None,
    prefix: str = "",
    connection: Connection = None,
) -> type[Table]:
    """Return a ``Table`` base type bound to a Redis connection.

    Args:
        client: A connected asyncio Redis client. When omitted a client is
            built from ``conf``.
        conf: Connection options for ``redis.asyncio.Redis``.
        prefix: Text prepended to every key.
        connection: Readiness awaitable for a caller-supplied client.

    Returns:
        The ``Table`` base type for declaring models.
    """
    if client is not None:
        schema = Schema.from_client(client, prefix=prefix, connection=connection)
    else:
        schema = Schema.connect(conf, prefix=prefix)
    return schema.Table
