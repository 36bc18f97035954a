"""Query executor package.

Provides the ``QueryExecutor`` Protocol and the async SQLAlchemy
implementation used for PostgreSQL (asyncpg) and SQLite (aiosqlite).

Usage:
    from db_mapper.adapters import QueryExecutor, AsyncSQLAlchemyExecutor
"""

from db_mapper.adapters.async_sqlalchemy import AsyncSQLAlchemyExecutor
from db_mapper.adapters.base import QueryExecutor

__all__ = [
    "QueryExecutor",
    "AsyncSQLAlchemyExecutor",
]
