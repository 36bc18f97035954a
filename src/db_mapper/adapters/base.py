"""Query executor protocol definition.

Defines the ``QueryExecutor`` Protocol that the mapping layer runs every
statement through.  All I/O methods are ``async def``; each accepts an
optional ``transaction`` (an open ``AsyncConnection``) that the statement is
bound to instead of a fresh pooled connection.

Filters are SQLAlchemy clause elements built against the reflected table,
so the protocol carries the full predicate vocabulary (``IN``, ``IS NULL``,
custom operators) without a private query DSL.

Usage:
    from db_mapper.adapters.base import QueryExecutor

    async def rename(executor: QueryExecutor, user_id: str) -> None:
        users = await executor.reflect("users")
        await executor.update(users, {"name": "Alice"}, [users.c.id == user_id])
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

import sqlalchemy as sa
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import AsyncConnection

from db_mapper.schema.models import TableSchema


class QueryExecutor(Protocol):
    """Executor interface that the mapping layer depends on.

    All I/O methods are async -- callers must ``await`` every operation.
    """

    @property
    def dialect(self) -> Dialect:
        """Dialect used to compile statements."""
        ...

    async def reflect(
        self, table_name: str, transaction: AsyncConnection | None = None
    ) -> sa.Table:
        """Reflect a table definition from the live database.

        Raises:
            NoSuchTable: If the table does not exist.
        """
        ...

    def describe(self, table: sa.Table) -> TableSchema:
        """Describe the columns of a reflected table."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[AsyncConnection]:
        """Open a connection inside a transaction that commits on exit."""
        ...

    async def select(
        self,
        table: sa.Table,
        columns: Sequence[sa.ColumnElement[Any]] | None = None,
        where: Sequence[sa.ColumnElement[bool]] = (),
        order_by: Sequence[sa.ColumnElement[Any]] = (),
        limit: int | None = None,
        offset: int | None = None,
        transaction: AsyncConnection | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Reflected table.
            columns: Columns to return (default: every column).
            where: Clause elements, all of which must match (AND).
            order_by: Ordering clauses.
            limit: Maximum number of rows.
            offset: Number of rows to skip.
            transaction: Optional connection to run on.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await executor.select(
                users,
                where=[users.c.status == "active"],
                order_by=[users.c.name.asc()],
            )
        """
        ...

    async def count(
        self,
        table: sa.Table,
        where: Sequence[sa.ColumnElement[bool]] = (),
        transaction: AsyncConnection | None = None,
    ) -> int:
        """Count rows matching ``where``."""
        ...

    async def insert(
        self, table: sa.Table, data: dict, transaction: AsyncConnection | None = None
    ) -> dict:
        """Insert a row and return it as persisted.

        Raises:
            sqlalchemy.exc.IntegrityError: On duplicate key or constraint
                violation.
        """
        ...

    async def update(
        self,
        table: sa.Table,
        data: dict,
        where: Sequence[sa.ColumnElement[bool]],
        transaction: AsyncConnection | None = None,
    ) -> list[dict]:
        """Update rows matching ``where`` and return them as persisted."""
        ...

    async def delete(
        self,
        table: sa.Table,
        where: Sequence[sa.ColumnElement[bool]],
        transaction: AsyncConnection | None = None,
    ) -> int:
        """Delete rows matching ``where`` and return the number deleted."""
        ...

    async def execute(
        self,
        sql: str,
        params: dict | None = None,
        transaction: AsyncConnection | None = None,
    ) -> None:
        """Execute a raw SQL statement (DDL or other non-query operations)."""
        ...

    async def close(self) -> None:
        """Close connections and clean up resources."""
        ...
