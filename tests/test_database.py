"""Tests for the database context and table registry."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from db_mapper import Database
from db_mapper.errors import NotConnectedError


class TestRegistry:
    """Table handles are registered once per table."""

    def test_model_registered_once(self, offline_db) -> None:
        users = offline_db.model("users", contexts={"simple": ["id"]})
        again = offline_db.model("users", contexts={"other": ["id"]})

        assert again is users
        assert "simple" in again.contexts
        assert "other" not in again.contexts

    def test_related_lookup_by_name(self, offline_db) -> None:
        users = offline_db.model("users", relations={"tasks": {"hasMany": "task"}})
        tasks = offline_db.model("tasks")
        assert users.related(users.relations["tasks"]) is tasks

    def test_handles_hold_weak_reference(self) -> None:
        database = Database(connect=False)
        users = database.model("users")
        assert users.database is database


class TestConnection:
    """Connect and disconnect lifecycle."""

    def test_not_connected(self, offline_db) -> None:
        assert offline_db.is_connected is False
        with pytest.raises(NotConnectedError):
            offline_db.executor

    def test_connect_requires_url(self, offline_db) -> None:
        with pytest.raises(ValueError):
            offline_db.connect()

    def test_connect_is_idempotent(self, tmp_path) -> None:
        database = Database(connect=False)
        database.connect(f"sqlite:///{tmp_path / 'a.db'}")
        executor = database.executor
        database.connect(f"sqlite:///{tmp_path / 'b.db'}")
        assert database.executor is executor

    @pytest.mark.asyncio
    async def test_disconnect(self) -> None:
        executor = MagicMock()
        executor.close = AsyncMock()
        database = Database(executor=executor)

        await database.disconnect()
        await database.disconnect()

        executor.close.assert_awaited_once()
        assert database.is_connected is False

    @pytest.mark.asyncio
    async def test_transaction_rolls_back(self, schema) -> None:
        users = schema.model("users")
        with pytest.raises(ZeroDivisionError):
            async with schema.transaction() as tx:
                await users.create({"firstName": "Ada"}, transaction=tx)
                1 / 0
        assert await users.count() == 0
