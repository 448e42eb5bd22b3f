"""Store adapter: key naming and the Redis commands tables are built from."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Union

from redis.exceptions import ResponseError

logger = logging.getLogger(__name__)

Connection = Union[Awaitable[Any], Callable[[], Awaitable[Any]], None]


class Store:
    """Issues Redis commands for one key prefix.

    Every command first awaits the connection readiness check, when one was
    given. Each command is atomic on its own key only; callers sequence them.
    """

    def __init__(
        self,
        client: Any,
        prefix: str = "",
        connection: Connection = None,
        owns_client: bool = False,
    ) -> None:
        """Initialize the store.

        Args:
            client: An asyncio Redis client returning ``str`` values.
            prefix: Text prepended to every key this store touches.
            connection: Awaitable, or zero-argument coroutine function, that
                completes when the client is ready for commands.
            owns_client: Close the client in ``close()``.
        """
        self.client = client
        self.prefix = prefix
        self._connection = connection
        self._ready = connection is None
        self._waiter: asyncio.Future[Any] | None = None
        self._owns_client = owns_client

    def member_key(self, model_name: str) -> str:
        """Key of the set holding every primary key of a model."""
        return f"{self.prefix}{model_name}"

    def record_key(self, model_name: str, key: Any) -> str:
        """Key of the hash holding one record's fields."""
        return f"{self.prefix}{model_name}_{key}"

    async def ensure_ready(self) -> None:
        """Wait for the connection before the first command.

        Concurrent first callers share one wait.
        """
        if self._ready:
            return
        if self._waiter is None:
            connection = self._connection
            if callable(connection):
                connection = connection()
            self._waiter = asyncio.ensure_future(connection)
        await self._waiter
        if not self._ready:
            self._ready = True
            logger.debug("Store ready (prefix=%r)", self.prefix)

    async def read_hash(self, key: str) -> dict[str, str]:
        await self.ensure_ready()
        return await self.client.hgetall(key) or {}

    async def write_field(self, key: str, field: str, value: str) -> None:
        await self.ensure_ready()
        await self.client.hset(key, field, value)

    async def add_members(self, key: str, *members: str) -> int:
        await self.ensure_ready()
        return await self.client.sadd(key, *members)

    async def remove_members(self, key: str, *members: str) -> int:
        await self.ensure_ready()
        return await self.client.srem(key, *members)

    async def is_member(self, key: str, member: str) -> bool:
        await self.ensure_ready()
        return bool(await self.client.sismember(key, member))

    async def members(self, key: str) -> list[str]:
        await self.ensure_ready()
        return list(await self.client.smembers(key))

    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        await self.ensure_ready()
        return await self.client.delete(*keys)

    async def rename(self, source: str, destination: str) -> bool:
        """Rename a key. A missing source is a no-op and returns False."""
        await self.ensure_ready()
        try:
            await self.client.rename(source, destination)
        except ResponseError as error:
            if "no such key" not in str(error).lower():
                raise
            logger.debug("Rename skipped, %s does not exist", source)
            return False
        return True

    async def close(self) -> None:
        """Close the client if this store created it."""
        if not self._owns_client:
            return
        close = getattr(self.client, "aclose", None) or getattr(self.client, "close")
        await close()

    def __repr__(self) -> str:
        return f"Store(prefix={self.prefix!r})"
