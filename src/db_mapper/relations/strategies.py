"""Persistence strategies, one per relation kind.

Each strategy reconciles the rows behind one relation of a freshly saved
parent with the value attached to it, recursing into the related table's own
save pipeline.  ``save_relation`` dispatches on ``RelationDefinition.kind``.

Every strategy takes the same arguments (owning model, saved parent row,
relation, attached value, options) and returns a ``SavedRelation``.
"""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa

from db_mapper.options import QueryOptions, gather_scoped
from db_mapper.relations.registry import RelationDefinition, RelationKind
from db_mapper.util import uuid

if TYPE_CHECKING:
    from db_mapper.adapters.base import QueryExecutor
    from db_mapper.model import Model

logger = logging.getLogger(__name__)


@dataclass
class SavedRelation:
    """Result of saving one relation.

    ``foreign_key`` is set when the parent must mirror a column value that the
    strategy wrote to the parent's row (belongsTo).
    """

    name: str
    value: Any
    foreign_key: str | None = None
    foreign_value: Any = None


async def existing_ids(
    executor: "QueryExecutor",
    table: sa.Table,
    ids: list[Any],
    options: QueryOptions,
) -> set[Any]:
    """Return the subset of ``ids`` that already have a row in ``table``."""
    if not ids:
        return set()
    rows = await executor.select(
        table,
        [table.c.id],
        where=[table.c.id.in_(ids)],
        transaction=options.transaction,
    )
    return {row["id"] for row in rows}


def _wanted_ids(records: list[dict]) -> list[Any]:
    return [r["id"] for r in records if r.get("id")]


def _unique_by_id(records: list[dict]) -> list[dict]:
    """Drop repeated identities, keeping the first occurrence."""
    seen = set()
    unique = []
    for record in records:
        record_id = record.get("id")
        if record_id:
            if record_id in seen:
                continue
            seen.add(record_id)
        unique.append(record)
    return unique


def _nested(options: QueryOptions) -> QueryOptions:
    # Only the timestamp and transaction carry over to related saves
    return replace(options, exists=None)


async def save_belongs_to(
    model: "Model",
    parent: dict,
    relation: RelationDefinition,
    value: dict | None,
    options: QueryOptions,
) -> SavedRelation:
    """Save the owning record and point the parent's foreign key at it."""
    related = model.related(relation)
    saved = await related.persist(value, _nested(options)) if value else None
    foreign_id = saved.get("id") if saved else None

    table = await model.table(options.transaction)
    await model.executor.update(
        table,
        {relation.key: foreign_id},
        [table.c.id == parent["id"]],
        transaction=options.transaction,
    )

    return SavedRelation(
        name=relation.name,
        value=saved,
        foreign_key=relation.key,
        foreign_value=foreign_id,
    )


async def save_has_many(
    model: "Model",
    parent: dict,
    relation: RelationDefinition,
    value: list[dict] | None,
    options: QueryOptions,
) -> SavedRelation:
    """Detach dropped children, then save every child pointing at the parent."""
    related = model.related(relation)
    executor = model.executor
    table = await related.table(options.transaction)
    records = list(value or [])
    wanted = _wanted_ids(records)
    key = relation.key

    # Detach, don't delete
    await executor.update(
        table,
        {key: None},
        [table.c[key] == parent["id"], table.c.id.not_in(wanted)],
        transaction=options.transaction,
    )
    existing = await existing_ids(executor, table, wanted, options)

    nested = _nested(options)
    saved = await gather_scoped(
        (
            related.persist(
                {**record, key: parent["id"]},
                replace(nested, exists=record.get("id") in existing),
            )
            for record in records
        ),
        options,
    )
    logger.debug(
        "Saved %d %s for %s %s", len(saved), relation.name, model.table_name, parent["id"]
    )
    return SavedRelation(name=relation.name, value=saved)


async def save_has_one(
    model: "Model",
    parent: dict,
    relation: RelationDefinition,
    value: dict | None,
    options: QueryOptions,
) -> SavedRelation:
    """Save the single child and detach any other row that points at the parent."""
    related = model.related(relation)
    executor = model.executor
    table = await related.table(options.transaction)
    key = relation.key

    if value is None:
        await executor.update(
            table,
            {key: None},
            [table.c[key] == parent["id"]],
            transaction=options.transaction,
        )
        return SavedRelation(name=relation.name, value=None)

    record = {**value, key: parent["id"]}
    record["id"] = record.get("id") or uuid()

    await executor.update(
        table,
        {key: None},
        [table.c[key] == parent["id"], table.c.id != record["id"]],
        transaction=options.transaction,
    )
    existing = await existing_ids(executor, table, [record["id"]], options)

    saved = await related.persist(
        record, replace(_nested(options), exists=record["id"] in existing)
    )
    return SavedRelation(name=relation.name, value=saved)


async def save_has_and_belongs_to_many(
    model: "Model",
    parent: dict,
    relation: RelationDefinition,
    value: list[dict] | None,
    options: QueryOptions,
) -> SavedRelation:
    """Save every related record and reconcile the join rows linking them.

    Join rows for records no longer attached are deleted; a join row is
    inserted only for records that were not already joined, so saving the
    same set twice leaves the join table unchanged.  A record listed more
    than once is saved and joined once.
    """
    related = model.related(relation)
    executor = model.executor
    through = await model.reflect_table(relation.through_table, options.transaction)
    table = await related.table(options.transaction)
    records = _unique_by_id(value or [])
    wanted = _wanted_ids(records)
    key, source_key = relation.key, relation.source_key

    joined_rows = await executor.select(
        through,
        [through.c[key]],
        where=[through.c[source_key] == parent["id"]],
        transaction=options.transaction,
    )
    joined = {row[key] for row in joined_rows}

    await executor.delete(
        through,
        [through.c[source_key] == parent["id"], through.c[key].not_in(wanted)],
        transaction=options.transaction,
    )
    existing = await existing_ids(executor, table, wanted, options)
    nested = _nested(options)

    async def _save_and_join(record: dict) -> dict:
        saved = await related.persist(
            record, replace(nested, exists=record.get("id") in existing)
        )
        related_id = saved.get("id")
        if related_id is None or related_id in joined:
            return saved

        joined.add(related_id)
        await executor.insert(
            through,
            {
                "id": uuid(),
                key: related_id,
                source_key: parent["id"],
                "createdAt": options.updated_at,
                "updatedAt": options.updated_at,
            },
            transaction=options.transaction,
        )
        return saved

    saved = await gather_scoped((_save_and_join(r) for r in records), options)
    return SavedRelation(name=relation.name, value=saved)


async def save_relation(
    model: "Model",
    parent: dict,
    relation: RelationDefinition,
    value: Any,
    options: QueryOptions,
) -> SavedRelation:
    """Dispatch to the strategy for ``relation.kind``."""
    match relation.kind:
        case RelationKind.BELONGS_TO:
            return await save_belongs_to(model, parent, relation, value, options)
        case RelationKind.HAS_MANY:
            return await save_has_many(model, parent, relation, value, options)
        case RelationKind.HAS_ONE:
            return await save_has_one(model, parent, relation, value, options)
        case RelationKind.HAS_AND_BELONGS_TO_MANY:
            return await save_has_and_belongs_to_many(
                model, parent, relation, value, options
            )
