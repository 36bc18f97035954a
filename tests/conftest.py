"""Shared fixtures: a file-backed SQLite database per test."""

import pytest
import pytest_asyncio

from db_mapper import Database

# Column shorthand used by the table fixtures
COLUMN_TYPES = {
    "id": "VARCHAR(36) PRIMARY KEY",
    "uuid": "VARCHAR(36)",
    "string": "VARCHAR(255)",
    "text": "TEXT",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
    "jsonb": "JSON",
    "timestamp": "DATETIME",
}


async def create_table(db: Database, name: str, columns: dict[str, str]) -> None:
    """Create ``name`` with an ``id`` primary key, timestamps, and ``columns``."""
    definitions = {"id": "id", **columns, "createdAt": "timestamp", "updatedAt": "timestamp"}
    body = ", ".join(f'"{column}" {COLUMN_TYPES[kind]}' for column, kind in definitions.items())
    await db.executor.execute(f'CREATE TABLE "{name}" ({body})')


@pytest_asyncio.fixture
async def db(tmp_path):
    """Connected database on a fresh SQLite file."""
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    yield database
    await database.disconnect()


@pytest_asyncio.fixture
async def schema(db):
    """Tables for users, their tasks, profiles, projects, and lists."""
    await create_table(db, "users", {"firstName": "string", "lastName": "string", "email": "string"})
    await create_table(db, "tasks", {"title": "string", "userId": "uuid"})
    await create_table(db, "profiles", {"bio": "text", "userId": "uuid"})
    await create_table(db, "projects", {"name": "string"})
    await create_table(db, "projects_users", {"projectId": "uuid", "userId": "uuid"})
    await create_table(db, "lists", {"name": "string", "tasks": "jsonb", "meta": "text"})
    return db


@pytest.fixture
def offline_db():
    """Database that never connects, for registry, context, and query tests."""
    return Database(connect=False)


@pytest.fixture
def make_table(db):
    """Create extra tables on the test database."""

    async def _make(name: str, columns: dict[str, str]) -> None:
        await create_table(db, name, columns)

    return _make
