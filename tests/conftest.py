"""Shared fixtures: an in-memory stand-in for the asyncio Redis client."""

from __future__ import annotations

import pytest
from redis.exceptions import ResponseError

from redis_tables import setup_table


class FakeRedis:
    """In-memory client implementing the commands tables issue."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.sets: dict[str, set[str]] = {}
        self.commands: list[str] = []

    async def hgetall(self, key):
        self.commands.append("HGETALL")
        return dict(self.hashes.get(key, {}))

    async def hset(self, key, field, value):
        self.commands.append("HSET")
        self.hashes.setdefault(key, {})[field] = str(value)
        return 1

    async def sadd(self, key, *members):
        self.commands.append("SADD")
        target = self.sets.setdefault(key, set())
        added = {str(m) for m in members} - target
        target.update(added)
        return len(added)

    async def srem(self, key, *members):
        self.commands.append("SREM")
        target = self.sets.get(key, set())
        removed = {str(m) for m in members} & target
        target.difference_update(removed)
        return len(removed)

    async def sismember(self, key, member):
        self.commands.append("SISMEMBER")
        return int(str(member) in self.sets.get(key, set()))

    async def smembers(self, key):
        self.commands.append("SMEMBERS")
        return set(self.sets.get(key, set()))

    async def delete(self, *keys):
        self.commands.append("DEL")
        count = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                count += 1
            if self.sets.pop(key, None) is not None:
                count += 1
        return count

    async def rename(self, source, destination):
        self.commands.append("RENAME")
        if source in self.hashes:
            self.hashes[destination] = self.hashes.pop(source)
        elif source in self.sets:
            self.sets[destination] = self.sets.pop(source)
        else:
            raise ResponseError("no such key")
        return True

    def keys(self) -> set[str]:
        return set(self.hashes) | set(self.sets)


@pytest.fixture
def client():
    """Create a fresh in-memory client."""
    return FakeRedis()


@pytest.fixture
def table(client):
    """Create a Table base bound to the in-memory client."""
    return setup_table(client=client, prefix="test:")


@pytest.fixture
def user_model(table):
    """Declare and register a User model."""

    class User(table):
        _key = "username"
        _keymap = {
            "username": {"type": "string", "isRequired": True, "min": 3, "max": 20},
            "email": {"type": "string", "isRequired": True},
            "age": {"type": "number", "min": 0},
            "active": {"type": "boolean", "default": True},
            "settings": {"type": "object"},
            "password": {"type": "string", "isPrivate": True},
        }

    User.register()
    return User
