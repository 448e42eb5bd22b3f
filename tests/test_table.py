"""Tests for the Table engine CRUD operations."""

import pytest

from redis_tables import EntryNameUsed, EntryNotFound, ValidationError


async def _create_john(user_model, **extra):
    return await user_model.create(
        {"username": "john", "email": "john@example.com", **extra}
    )


class TestCreate:
    """Tests for Table.create."""

    async def test_create_entry(self, user_model):
        """A created entry is returned with defaults applied."""
        user = await _create_john(user_model, age=30)

        assert isinstance(user, user_model)
        assert user.username == "john"
        assert user.email == "john@example.com"
        assert user.age == 30
        assert user.active is True

    async def test_create_then_get_reflects_default(self, table):
        """A boolean default is persisted and read back as a boolean."""

        class Flag(table):
            _key = "id"
            _keymap = {
                "id": {"type": "string", "isRequired": True},
                "active": {"type": "boolean", "default": True},
            }

        await Flag.create({"id": "a"})
        flag = await Flag.get("a")

        assert flag.to_json() == {"id": "a", "active": True}

    async def test_missing_required_field(self, user_model):
        """Missing required fields fail with one entry each."""
        with pytest.raises(ValidationError) as exc_info:
            await user_model.create({"age": 3})

        error = exc_info.value
        assert error.status == 422
        assert [entry["key"] for entry in error.message] == ["username", "email"]

    async def test_duplicate_key(self, user_model):
        """Creating the same key twice fails with EntryNameUsed."""
        await _create_john(user_model)

        with pytest.raises(EntryNameUsed) as exc_info:
            await _create_john(user_model)

        error = exc_info.value
        assert error.name == "EntryNameUsed"
        assert error.status == 409
        assert error.keys[0]["key"] == "username"
        assert "john" in error.message

    async def test_object_fields(self, user_model):
        """Object fields come back as parsed JSON."""
        settings = {"theme": "dark", "notifications": [1, 2]}
        user = await _create_john(user_model, settings=settings)

        assert user.settings == settings

    async def test_wire_format(self, user_model, client):
        """Every stored value is a string under the prefixed keys."""
        await _create_john(user_model, age=30, settings={"a": 1})

        assert client.sets["test:User"] == {"john"}
        assert client.hashes["test:User_john"] == {
            "username": "john",
            "email": "john@example.com",
            "age": "30",
            "active": "true",
            "settings": '{"a":1}',
        }

    async def test_failed_validation_writes_nothing(self, user_model, client):
        """A rejected create issues no writes."""
        with pytest.raises(ValidationError):
            await user_model.create({"username": "jo", "email": "x"})

        assert client.keys() == set()


class TestGet:
    """Tests for Table.get."""

    async def test_get_existing(self, user_model):
        await _create_john(user_model)

        user = await user_model.get("john")
        assert user.username == "john"
        assert user.email == "john@example.com"

    async def test_get_by_mapping(self, user_model):
        """The key can be passed inside a mapping."""
        await _create_john(user_model)

        user = await user_model.get({"username": "john"})
        assert user.username == "john"

    async def test_get_missing(self, user_model):
        """A key that was never created raises EntryNotFound."""
        with pytest.raises(EntryNotFound) as exc_info:
            await user_model.get("nobody")

        assert exc_info.value.name == "EntryNotFound"
        assert exc_info.value.status == 404

    async def test_parses_types(self, user_model):
        await _create_john(user_model, age=25, active=False, settings=[1])

        user = await user_model.get("john")
        assert user.age == 25
        assert user.active is False
        assert user.settings == [1]


class TestExistsAndList:
    """Tests for exists, list and list_detail."""

    async def test_exists(self, user_model):
        await _create_john(user_model)

        assert await user_model.exists("john") is True
        assert await user_model.exists({"username": "john"}) is True
        assert await user_model.exists("jane") is False

    async def test_list_empty(self, user_model):
        assert await user_model.list() == []

    async def test_list_keys(self, user_model):
        await _create_john(user_model)
        await user_model.create({"username": "jane", "email": "jane@example.com"})

        assert sorted(await user_model.list()) == ["jane", "john"]

    async def test_list_detail_all(self, user_model):
        await _create_john(user_model)
        await user_model.create({"username": "jane", "email": "jane@example.com"})

        users = await user_model.list_detail()
        assert sorted(u.username for u in users) == ["jane", "john"]
        assert all(isinstance(u, user_model) for u in users)

    async def test_list_detail_filter(self, user_model):
        await _create_john(user_model, age=30)
        await user_model.create({"username": "jane", "email": "j@example.com", "age": 25})

        users = await user_model.list_detail({"age": 30})
        assert [u.username for u in users] == ["john"]

    async def test_list_detail_requires_all_pairs(self, user_model):
        """Instances matching only some of the pairs are excluded."""
        await _create_john(user_model, age=30, active=True)
        await user_model.create(
            {"username": "jane", "email": "j@example.com", "age": 30, "active": False}
        )
        await user_model.create(
            {"username": "jack", "email": "k@example.com", "age": 20, "active": True}
        )

        users = await user_model.list_detail({"age": 30, "active": True})
        assert [u.username for u in users] == ["john"]

    async def test_findall_alias(self, user_model):
        await _create_john(user_model)

        assert [u.username for u in await user_model.findall()] == ["john"]


class TestUpdate:
    """Tests for Table.update."""

    async def test_update_fields(self, user_model):
        user = await _create_john(user_model)

        result = await user.update({"email": "new@example.com", "age": 40})

        assert result is user
        assert user.email == "new@example.com"
        assert user.age == 40

    async def test_update_persists(self, user_model):
        user = await _create_john(user_model)
        await user.update({"age": 41})

        fetched = await user_model.get("john")
        assert fetched.age == 41
        assert fetched.email == "john@example.com"

    async def test_update_key(self, user_model, client):
        """Renaming the key moves the record and keeps other fields."""
        user = await _create_john(user_model)
        await user.update({"username": "john2"})

        with pytest.raises(EntryNotFound):
            await user_model.get("john")

        renamed = await user_model.get("john2")
        assert renamed.username == "john2"
        assert renamed.email == "john@example.com"
        assert await user_model.exists("john") is False
        assert await user_model.exists("john2") is True
        assert "test:User_john" not in client.hashes

    async def test_update_key_to_used_value(self, user_model):
        user = await _create_john(user_model)
        await user_model.create({"username": "jane", "email": "jane@example.com"})

        with pytest.raises(EntryNameUsed):
            await user.update({"username": "jane"})

        assert user.username == "john"

    async def test_update_same_key_is_not_a_rename(self, user_model, client):
        user = await _create_john(user_model)
        client.commands.clear()

        await user.update({"username": "john", "age": 3})

        assert "RENAME" not in client.commands
        assert (await user_model.get("john")).age == 3

    async def test_partial_update_validates(self, user_model):
        user = await _create_john(user_model)

        with pytest.raises(ValidationError):
            await user.update({"age": -1})

    async def test_update_empty_key_rejected(self, table):
        class Slot(table):
            _key = "name"
            _keymap = {"name": {"type": "string", "isRequired": True}}

        slot = await Slot.create({"name": "a"})

        with pytest.raises(ValidationError):
            await slot.update({"name": ""})


class TestRemove:
    """Tests for Table.remove."""

    async def test_remove(self, user_model):
        user = await _create_john(user_model)

        result = await user.remove()

        assert result is user
        assert await user_model.exists("john") is False
        with pytest.raises(EntryNotFound):
            await user_model.get("john")

    async def test_remove_from_list(self, user_model, client):
        user = await _create_john(user_model)
        await user_model.create({"username": "jane", "email": "jane@example.com"})

        await user.remove()

        assert await user_model.list() == ["jane"]
        assert "test:User_john" not in client.hashes


class TestOutput:
    """Tests for to_json and to_string."""

    async def test_to_json(self, user_model):
        user = await _create_john(user_model, age=30)

        assert user.to_json() == {
            "username": "john",
            "email": "john@example.com",
            "age": 30,
            "active": True,
        }

    async def test_to_json_excludes_private(self, user_model):
        user = await _create_john(user_model, password="secret")

        assert user.password == "secret"
        assert "password" not in user.to_json()

    async def test_to_string(self, user_model):
        user = await _create_john(user_model)

        assert user.to_string() == "john"
        assert str(user) == "john"

    async def test_numeric_key(self, table):
        class Counter(table):
            _key = "id"
            _keymap = {
                "id": {"type": "number", "isRequired": True},
                "hits": {"type": "number", "default": 0},
            }

        await Counter.create({"id": 7})
        counter = await Counter.get(7)

        assert counter.to_string() == 7
        assert counter.hits == 0
        assert await Counter.list() == ["7"]

    async def test_to_json_underscore_field(self, table):
        """Declared fields whose names start with an underscore are output."""

        class Doc(table):
            _key = "_id"
            _keymap = {
                "_id": {"type": "string", "isRequired": True},
                "_rev": {"type": "number"},
            }

        doc = await Doc.create({"_id": "d1", "_rev": 2})

        assert doc.to_json() == {"_id": "d1", "_rev": 2}

    async def test_undeclared_stored_fields(self, user_model, client):
        """Stored fields the model does not declare stay off the instance."""
        await _create_john(user_model)
        client.hashes["test:User_john"]["update"] = "x"
        client.hashes["test:User_john"]["nickname"] = "jj"

        user = await user_model.get("john")

        assert callable(user.update)
        assert user.extra() == {"update": "x", "nickname": "jj"}
        assert user.to_json()["nickname"] == "jj"
        assert [u.username for u in await user_model.list_detail({"nickname": "jj"})] == ["john"]


class TestModelDeclaration:
    """Tests for model declaration and registration."""

    def test_key_must_be_declared(self, table):
        with pytest.raises(ValueError):

            class Broken(table):
                _key = "id"
                _keymap = {"name": {"type": "string"}}

    def test_field_shadowing_method_rejected(self, table):
        with pytest.raises(ValueError, match="remove"):

            class Task(table):
                _key = "id"
                _keymap = {
                    "id": {"type": "string", "isRequired": True},
                    "remove": {"type": "boolean"},
                }

    def test_field_shadowing_class_attribute_rejected(self, table):
        with pytest.raises(ValueError, match="store"):

            class Shop(table):
                _key = "id"
                _keymap = {
                    "id": {"type": "string", "isRequired": True},
                    "store": {"type": "string"},
                }

    def test_register(self, table, user_model):
        assert table.models["User"] is user_model
        assert "User" in table.models

    def test_register_as_decorator(self, table):
        @table.register
        class Item(table):
            _key = "sku"
            _keymap = {"sku": {"type": "string", "isRequired": True}}

        assert table.models["Item"] is Item

    def test_registry_shared_by_models(self, table, user_model):
        assert user_model.models is table.models

    def test_client_exposed(self, table, client):
        assert table.client is client

    def test_errors_table(self, table):
        assert table.errors["EntryNotFound"] is EntryNotFound
        assert table.errors["ValidationError"] is ValidationError
