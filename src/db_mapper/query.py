"""Query scopes: filters, ordering, and paging stored as data.

A ``Scope`` is immutable.  Chain methods on ``Model`` produce a new scope
and a new handle, so a scope can be shared freely between handles and
compiled later against whichever table it is executed on.

Usage:
    from db_mapper.query import Filter, Scope, compile_scope

    scope = Scope().where(Filter("email", "=", "a@b.c")).paged(2, 20)
    where, order_by = compile_scope(scope, table)
"""

import json
from dataclasses import dataclass, replace
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Dialect
from sqlalchemy.engine.default import DefaultDialect

from db_mapper.adapters.async_sqlalchemy import build_select

OPERATORS = (
    "=", "!=", "<>", "<", "<=", ">", ">=",
    "like", "ilike", "in", "not in", "is null", "is not null", "@>",
)


@dataclass(frozen=True)
class Filter:
    """One ``column operator value`` predicate."""

    column: str
    operator: str = "="
    value: Any = None


@dataclass(frozen=True)
class Scope:
    """Filters, ordering, paging, and eager-loaded relations for a query."""

    filters: tuple[Filter, ...] = ()
    order_by: tuple[tuple[str, str], ...] = ()
    limit: int | None = None
    offset: int | None = None
    include: tuple[str, ...] = ()

    def where(self, *filters: Filter) -> "Scope":
        return replace(self, filters=self.filters + filters)

    def ordered(self, column: str, direction: str = "asc") -> "Scope":
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid order direction: {direction!r}")
        return replace(self, order_by=self.order_by + ((column, direction),))

    def paged(self, page: int, per_page: int = 20) -> "Scope":
        if page < 1:
            raise ValueError(f"Page numbers start at 1, got {page}")
        return replace(self, limit=per_page, offset=(page - 1) * per_page)

    def including(self, *names: str) -> "Scope":
        return replace(self, include=self.include + names)

    @property
    def columns(self) -> list[str]:
        """Every column referenced by a filter or ordering, in first-use order."""
        names = [f.column for f in self.filters] + [c for c, _ in self.order_by]
        return list(dict.fromkeys(names))


def compile_filter(
    condition: Filter, column: sa.ColumnElement[Any]
) -> sa.ColumnElement[bool]:
    """Compile a ``Filter`` into a SQLAlchemy boolean clause.

    ``=`` and ``!=`` against ``None`` render as ``IS NULL`` / ``IS NOT NULL``.
    Operators outside ``OPERATORS`` are passed to ``ColumnOperators.op``.

    Examples:
        >>> users = sa.table("users", sa.column("age"))
        >>> str(compile_filter(Filter("age", ">", 18), users.c.age))
        'users.age > :age_1'
    """
    value = condition.value
    match condition.operator.strip().lower():
        case "=":
            return column == value
        case "!=" | "<>":
            return column != value
        case "<":
            return column < value
        case "<=":
            return column <= value
        case ">":
            return column > value
        case ">=":
            return column >= value
        case "like":
            return column.like(value)
        case "ilike":
            return column.ilike(value)
        case "in":
            return column.in_(list(value))
        case "not in":
            return column.not_in(list(value))
        case "is null":
            return column.is_(None)
        case "is not null":
            return column.is_not(None)
        case "@>":
            if isinstance(column.type, postgresql.JSONB):
                return column.contains(value)
            return column.op("@>")(json.dumps(value))
        case _:
            return column.op(condition.operator)(value)


def compile_scope(
    scope: Scope, table: sa.TableClause
) -> tuple[list[sa.ColumnElement[bool]], list[sa.ColumnElement[Any]]]:
    """Compile a scope's filters and ordering against ``table``.

    Raises:
        KeyError: If the scope references a column the table does not have.
    """
    where = [compile_filter(f, _column(table, f.column)) for f in scope.filters]
    order_by: list[sa.ColumnElement[Any]] = []
    for name, direction in scope.order_by:
        column = _column(table, name)
        order_by.append(column.desc() if direction == "desc" else column.asc())
    return where, order_by


def _column(table: sa.TableClause, name: str) -> sa.ColumnElement[Any]:
    try:
        return table.c[name]
    except KeyError:
        raise KeyError(f"Table '{table.name}' has no column '{name}'") from None


def render_scope(
    table_name: str, scope: Scope, dialect: Dialect | None = None
) -> str:
    """Render the SELECT a scope would run, with literal values inlined.

    Uses a lightweight table built from the referenced column names, so no
    database round-trip is needed.

    Example:
        render_scope("users", Scope().where(Filter("id", "=", "abc")))
        # SELECT * FROM users WHERE users.id = 'abc'
    """
    table = sa.table(table_name, *(sa.column(name) for name in scope.columns))
    where, order_by = compile_scope(scope, table)
    statement = build_select(
        table,
        [sa.literal_column("*")],
        where,
        order_by,
        scope.limit,
        scope.offset,
    ).select_from(table)
    compiled = statement.compile(
        dialect=dialect or DefaultDialect(),
        compile_kwargs={"literal_binds": True},
    )
    return str(compiled)
