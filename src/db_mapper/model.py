"""Table handles: save, destroy, query, and project records of one table.

A ``Model`` is registered once per table on a ``Database`` and keeps only a
weak reference back to it; related tables are looked up by name through the
database.  Chain methods (``where``, ``order``, ``page``, ``include``) return
a new handle carrying a new ``Scope`` and sharing the registered handle's
reflection cache.

Usage:
    users = db.model("users", relations={"projects": {"hasAndBelongsToMany": "project"}})

    user = await users.create({"name": "Ada", "projects": [{"name": "Engine"}]})
    same = await users.include("projects").find(user["id"])
    await users.destroy(same)
"""

import copy
import functools
import inspect
import json
import logging
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection

from db_mapper.context import DEFAULT_CONTEXT, ContextDefinition, project
from db_mapper.errors import MapperError, OperationCancelled
from db_mapper.options import QueryOptions, gather_scoped
from db_mapper.query import Filter, Scope, compile_scope, render_scope
from db_mapper.relations.loader import include_relations
from db_mapper.relations.registry import (
    RelationDeclaration,
    RelationDefinition,
    RelationKind,
    build_relations,
)
from db_mapper.relations.strategies import save_relation
from db_mapper.schema.models import TableSchema
from db_mapper.util import uuid

if TYPE_CHECKING:
    from db_mapper.adapters.base import QueryExecutor
    from db_mapper.database import Database

logger = logging.getLogger(__name__)

HOOK_NAMES = (
    "before_create",
    "before_save",
    "after_save",
    "after_create",
    "before_destroy",
    "after_destroy",
)

# camelCase spellings accepted at registration
_HOOK_ALIASES = {
    "beforeCreate": "before_create",
    "beforeSave": "before_save",
    "afterSave": "after_save",
    "afterCreate": "after_create",
    "beforeDestroy": "before_destroy",
    "afterDestroy": "after_destroy",
}

_JSON_TYPES = ("json", "jsonb")

_UNSET = object()

Hook = Callable[[dict[str, Any], QueryOptions], Any]


def _positional_arity(hook: Hook) -> int | None:
    """Number of positional parameters ``hook`` accepts, ``None`` if unbounded."""
    try:
        parameters = inspect.signature(hook).parameters.values()
    except (TypeError, ValueError):
        return None
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in parameters):
        return None
    return sum(
        p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        for p in parameters
    )


def _validate_hooks(hooks: dict[str, Hook] | None) -> dict[str, Hook]:
    """Canonicalize hook names and adapt ``hook(record)`` callables.

    Raises:
        ValueError: If a name is unknown, or a hook is not callable with
            ``(record)`` or ``(record, options)``.
    """
    validated: dict[str, Hook] = {}
    for name, hook in (hooks or {}).items():
        canonical = _HOOK_ALIASES.get(name, name)
        if canonical not in HOOK_NAMES:
            raise ValueError(
                f"Unknown hook '{name}'. Valid hooks: {', '.join(HOOK_NAMES)}"
            )
        if not callable(hook):
            raise ValueError(f"Hook '{name}' is not callable")

        arity = _positional_arity(hook)
        if arity == 0:
            raise ValueError(
                f"Hook '{name}' must accept (record) or (record, options)"
            )
        if arity == 1:
            hook = functools.partial(_call_with_record, hook)
        validated[canonical] = hook
    return validated


def _call_with_record(hook: Hook, record: dict[str, Any], options: QueryOptions) -> Any:
    return hook(record)


def normalize_values(
    record: dict[str, Any], json_columns: set[str] | frozenset[str] = frozenset()
) -> dict[str, Any]:
    """Prepare own fields for writing.

    Dicts, lists, and tuples become JSON text, except in JSON-typed columns
    where the column type serializes them.  The string ``"null"`` becomes
    ``None``.
    """
    values = {}
    for key, value in record.items():
        if isinstance(value, (dict, list, tuple)) and key not in json_columns:
            value = json.dumps(value, default=str)
        if value == "null":
            value = None
        values[key] = value
    return values


@dataclass
class Cancelled:
    """Outcome of a before-hook that cancelled the operation."""

    hook: str
    error: Exception


@dataclass
class _TableState:
    """Reflection cache shared by a registered handle and its chained copies."""

    tables: dict[str, sa.Table] = field(default_factory=dict)
    schema: TableSchema | None = None


class Model:
    """Handle for one table.

    Args:
        database: Owning database (held weakly).
        table_name: Table the handle reads and writes.
        relations: Relation declarations keyed by relation name.
        hooks: Lifecycle callbacks keyed by hook name.  Each is called as
            ``hook(record, options)``, or ``hook(record)`` when it takes a
            single argument, and may be a coroutine function.
        contexts: Named projections used by ``with_context``.

    Raises:
        UnknownRelationKind: If a relation declaration is invalid.
        ValueError: If a hook name is unknown or a hook takes no arguments.
    """

    def __init__(
        self,
        database: "Database",
        table_name: str,
        relations: dict[str, RelationDeclaration | dict[str, Any]] | None = None,
        hooks: dict[str, Hook] | None = None,
        contexts: dict[str, ContextDefinition] | None = None,
    ) -> None:
        self._database = weakref.ref(database)
        self.table_name = table_name
        self.relations: dict[str, RelationDefinition] = build_relations(
            table_name, relations
        )
        self.hooks = _validate_hooks(hooks)
        self.contexts: dict[str, ContextDefinition] = dict(contexts or {})
        self._scope = Scope()
        self._state = _TableState()

    def __repr__(self) -> str:
        return f"Model({self.table_name!r})"

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def database(self) -> "Database":
        database = self._database()
        if database is None:
            raise MapperError(f"The database owning {self.table_name} no longer exists")
        return database

    @property
    def executor(self) -> "QueryExecutor":
        return self.database.executor

    @property
    def scope(self) -> Scope:
        return self._scope

    def related(self, relation: RelationDefinition) -> "Model":
        """Handle for the table on the other side of ``relation``."""
        return self.database.model(relation.table_name)

    async def reflect_table(
        self, table_name: str, transaction: AsyncConnection | None = None
    ) -> sa.Table:
        """Reflect ``table_name``, cached for the lifetime of this handle."""
        table = self._state.tables.get(table_name)
        if table is None:
            table = await self.executor.reflect(table_name, transaction=transaction)
            self._state.tables[table_name] = table
        return table

    async def table(self, transaction: AsyncConnection | None = None) -> sa.Table:
        """This handle's reflected table."""
        return await self.reflect_table(self.table_name, transaction)

    async def schema(self, transaction: AsyncConnection | None = None) -> TableSchema:
        """Column information for the table, introspected once per handle.

        Raises:
            NoSuchTable: If the table does not exist.
        """
        if self._state.schema is None:
            table = await self.table(transaction)
            self._state.schema = self.executor.describe(table)
        return self._state.schema

    # ------------------------------------------------------------------
    # Scope chaining
    # ------------------------------------------------------------------

    def _chain(self, scope: Scope) -> "Model":
        clone = copy.copy(self)
        clone._scope = scope
        return clone

    def where(
        self, column: str | dict[str, Any], operator: Any = None, value: Any = _UNSET
    ) -> "Model":
        """Add a filter.

        ``where({"a": 1, "b": 2})`` adds an equality per key,
        ``where("age", ">", 18)`` adds one comparison, and
        ``where("name", "Ada")`` is shorthand for equality.
        """
        if isinstance(column, dict):
            return self._chain(
                self._scope.where(*(Filter(k, "=", v) for k, v in column.items()))
            )
        if value is _UNSET:
            if isinstance(operator, str) and operator.lower() in ("is null", "is not null"):
                operator, value = operator, None
            else:
                operator, value = "=", operator
        return self._chain(self._scope.where(Filter(column, operator, value)))

    def where_in(self, column: str, values: list[Any]) -> "Model":
        return self._chain(self._scope.where(Filter(column, "in", list(values))))

    def where_not_in(self, column: str, values: list[Any]) -> "Model":
        return self._chain(self._scope.where(Filter(column, "not in", list(values))))

    def where_null(self, column: str) -> "Model":
        return self._chain(self._scope.where(Filter(column, "is null")))

    def where_not_null(self, column: str) -> "Model":
        return self._chain(self._scope.where(Filter(column, "is not null")))

    def where_jsonb_contains(self, column: str, value: Any) -> "Model":
        """Match rows whose JSONB array ``column`` contains ``value``."""
        return self._chain(self._scope.where(Filter(column, "@>", [value])))

    def include(self, *relation_names: str) -> "Model":
        """Eager-load the named relations on every read from the returned handle."""
        return self._chain(self._scope.including(*relation_names))

    def order(self, column: str, direction: str = "asc") -> "Model":
        return self._chain(self._scope.ordered(column, direction))

    def page(self, page: int, per_page: int = 20) -> "Model":
        """Limit results to one page; pages are numbered from 1."""
        return self._chain(self._scope.paged(page, per_page))

    def to_string(self) -> str:
        """Render the SELECT this handle would run, with values inlined."""
        database = self._database()
        dialect = database.dialect if database is not None and database.is_connected else None
        return render_scope(self.table_name, self._scope, dialect)

    def __str__(self) -> str:
        return self.to_string()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def all(self, transaction: AsyncConnection | None = None) -> list[dict]:
        """Run the scoped query and return every row, with included relations."""
        options = QueryOptions(transaction=transaction)
        table = await self.table(transaction)
        where, order_by = compile_scope(self._scope, table)
        rows = await self.executor.select(
            table,
            where=where,
            order_by=order_by,
            limit=self._scope.limit,
            offset=self._scope.offset,
            transaction=transaction,
        )
        return await include_relations(self, rows, self._scope.include, options)

    async def first(self, transaction: AsyncConnection | None = None) -> dict | None:
        """First row of the scoped query, or ``None``."""
        rows = await self._chain(replace(self._scope, limit=1)).all(transaction)
        return rows[0] if rows else None

    async def find(self, id: Any, transaction: AsyncConnection | None = None) -> dict | None:
        """Row with identity ``id``, or ``None``."""
        return await self.where({"id": id}).first(transaction)

    async def count(self, transaction: AsyncConnection | None = None) -> int:
        table = await self.table(transaction)
        where, _ = compile_scope(self._scope, table)
        return await self.executor.count(table, where=where, transaction=transaction)

    async def bulk_destroy(self, transaction: AsyncConnection | None = None) -> int:
        """Delete every row in scope.  Hooks and dependent relations are ignored."""
        table = await self.table(transaction)
        where, _ = compile_scope(self._scope, table)
        deleted = await self.executor.delete(table, where, transaction=transaction)
        logger.debug("Bulk destroyed %d %s rows", deleted, self.table_name)
        return deleted

    def with_context(
        self,
        records: dict | list[dict] | None,
        context: str | ContextDefinition = DEFAULT_CONTEXT,
    ) -> Any:
        """Project records through a named context, field list, or callable.

        Raises:
            ContextNotFound: If a named context is not registered.
        """
        return project(self, records, context)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    async def _run_hook(self, name: str, record: dict, options: QueryOptions) -> None:
        hook = self.hooks.get(name)
        if hook is None:
            return
        result = hook(record, options)
        if inspect.isawaitable(result):
            await result

    async def _run_before_hooks(
        self, names: list[str], record: dict, options: QueryOptions
    ) -> Cancelled | None:
        """Run before-hooks in order; the first failure cancels the operation."""
        for name in names:
            try:
                await self._run_hook(name, record, options)
            except OperationCancelled as e:
                logger.debug("%s %s cancelled by %s: %s", self.table_name, record.get("id"), name, e)
                return Cancelled(name, e)
            except sa.exc.SQLAlchemyError:
                raise
            except Exception as e:
                logger.warning(
                    "%s hook on %s raised; operation cancelled",
                    name,
                    self.table_name,
                    exc_info=True,
                )
                return Cancelled(name, e)
        return None

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save(
        self,
        records: dict | list[dict],
        *,
        transaction: AsyncConnection | None = None,
        exists: bool | None = None,
        skip_hooks: bool = False,
    ) -> dict | list[dict]:
        """Insert or update a record (or each record of a list) with its relations.

        Relation fields are saved through their relation strategies after the
        row itself is written.  Lists are saved concurrently, or in order when
        a transaction is given.

        Args:
            records: Record or list of records.
            transaction: Connection to run every statement on.
            exists: Known persistence state, skipping the existence query.
            skip_hooks: Bypass all lifecycle hooks.

        Returns:
            The persisted row(s) with relations reattached, or the original
            input unchanged when a before-hook cancelled the save.
        """
        options = QueryOptions(transaction=transaction, exists=exists, skip_hooks=skip_hooks)
        if isinstance(records, list):
            return await gather_scoped((self.persist(r, options) for r in records), options)
        return await self.persist(records, options)

    create = save

    async def persist(self, record: dict, options: QueryOptions | None = None) -> dict:
        """Save one record with an explicit ``QueryOptions``."""
        options = options or QueryOptions()
        if options.updated_at is None:
            options = replace(options, updated_at=datetime.now())

        own = {k: v for k, v in record.items() if k not in self.relations}
        attached = {k: v for k, v in record.items() if k in self.relations}

        if own.get("id") is None:
            own["id"] = uuid()

        schema = await self.schema(options.transaction)
        json_columns = {
            name for name, column in schema.columns.items() if column.data_type in _JSON_TYPES
        }
        own = normalize_values(own, json_columns)
        own["updatedAt"] = options.updated_at

        table = await self.table(options.transaction)
        exists = options.exists
        if exists is None:
            rows = await self.executor.select(
                table,
                [table.c.id],
                where=[table.c.id == own["id"]],
                limit=1,
                transaction=options.transaction,
            )
            exists = bool(rows)
        hook_options = replace(options, exists=exists)

        if not options.skip_hooks:
            names = ["before_save"] if exists else ["before_create", "before_save"]
            if await self._run_before_hooks(names, own, hook_options) is not None:
                return record

        # Hooks may have changed values
        own = normalize_values(own, json_columns)

        if exists:
            rows = await self.executor.update(
                table, own, [table.c.id == own["id"]], transaction=options.transaction
            )
            if not rows:
                raise ValueError(f"No {self.table_name} row with id {own['id']} to update")
            saved = rows[0]
        else:
            own["createdAt"] = options.updated_at
            saved = await self.executor.insert(table, own, transaction=options.transaction)
        logger.debug("%s %s %s", "Updated" if exists else "Inserted", self.table_name, saved["id"])

        if attached:
            saved = await self._save_relations(saved, attached, options)

        if not options.skip_hooks:
            await self._run_hook("after_save", saved, hook_options)
            if not exists:
                await self._run_hook("after_create", saved, hook_options)

        return saved

    async def _save_relations(
        self, saved: dict, attached: dict[str, Any], options: QueryOptions
    ) -> dict:
        nested = replace(options, exists=None)
        results = await gather_scoped(
            (
                save_relation(self, saved, self.relations[name], value, nested)
                for name, value in attached.items()
            ),
            options,
        )
        merged = dict(saved)
        for result in results:
            merged[result.name] = result.value
            if result.foreign_key:
                merged[result.foreign_key] = result.foreign_value
        return merged

    # ------------------------------------------------------------------
    # Destroy
    # ------------------------------------------------------------------

    async def destroy(
        self,
        records: dict | list[dict],
        *,
        transaction: AsyncConnection | None = None,
        skip_hooks: bool = False,
    ) -> dict | list[dict]:
        """Delete a record (or each record of a list) and cascade to its relations.

        Join rows of many-to-many relations are always removed.  Rows of
        ``dependent`` relations are deleted; rows of other hasMany and hasOne
        relations are detached by clearing their foreign key.

        Returns:
            The input record(s), unmodified.
        """
        options = QueryOptions(transaction=transaction, skip_hooks=skip_hooks)
        if isinstance(records, list):
            return await gather_scoped((self._destroy_one(r, options) for r in records), options)
        return await self._destroy_one(records, options)

    async def _destroy_one(self, record: dict, options: QueryOptions) -> dict:
        if not options.skip_hooks:
            if await self._run_before_hooks(["before_destroy"], record, options) is not None:
                return record

        table = await self.table(options.transaction)
        await self.executor.delete(
            table, [table.c.id == record["id"]], transaction=options.transaction
        )
        await gather_scoped(
            (self._cascade(record, relation, options) for relation in self.relations.values()),
            options,
        )
        logger.debug("Destroyed %s %s", self.table_name, record["id"])

        if not options.skip_hooks:
            await self._run_hook("after_destroy", record, options)
        return record

    async def _cascade(
        self, record: dict, relation: RelationDefinition, options: QueryOptions
    ) -> None:
        executor = self.executor
        transaction = options.transaction

        match relation.kind:
            case RelationKind.HAS_AND_BELONGS_TO_MANY:
                through = await self.reflect_table(relation.through_table, transaction)
                await executor.delete(
                    through, [through.c[relation.source_key] == record["id"]], transaction=transaction
                )
            case RelationKind.HAS_MANY | RelationKind.HAS_ONE:
                table = await self.related(relation).table(transaction)
                where = [table.c[relation.key] == record["id"]]
                if relation.dependent:
                    await executor.delete(table, where, transaction=transaction)
                else:
                    await executor.update(table, {relation.key: None}, where, transaction=transaction)
            case RelationKind.BELONGS_TO:
                owner_id = record.get(relation.key)
                if relation.dependent and owner_id is not None:
                    table = await self.related(relation).table(transaction)
                    await executor.delete(table, [table.c.id == owner_id], transaction=transaction)
