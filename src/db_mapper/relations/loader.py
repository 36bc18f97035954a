"""Eager loading of relations for a result set.

One query per requested relation (two for hasAndBelongsToMany: join rows,
then related rows), regardless of how many rows are being decorated.
"""

import logging
from typing import TYPE_CHECKING, Any

from db_mapper.errors import UnknownRelationName
from db_mapper.options import QueryOptions, gather_scoped
from db_mapper.relations.registry import RelationDefinition, RelationKind

if TYPE_CHECKING:
    from db_mapper.model import Model

logger = logging.getLogger(__name__)


async def _load(
    model: "Model", relation: RelationDefinition, rows: list[dict], options: QueryOptions
) -> tuple[list[dict], list[dict]]:
    """Fetch related rows (and join rows, for many-to-many) for ``rows``."""
    executor = model.executor
    related = model.related(relation)
    table = await related.table(options.transaction)
    ids = [row["id"] for row in rows]

    match relation.kind:
        case RelationKind.BELONGS_TO:
            foreign_ids = list({row.get(relation.key) for row in rows} - {None})
            related_rows = await executor.select(
                table, where=[table.c.id.in_(foreign_ids)], transaction=options.transaction
            )
            return related_rows, []

        case RelationKind.HAS_MANY | RelationKind.HAS_ONE:
            related_rows = await executor.select(
                table,
                where=[table.c[relation.key].in_(ids)],
                transaction=options.transaction,
            )
            return related_rows, []

        case RelationKind.HAS_AND_BELONGS_TO_MANY:
            through = await model.reflect_table(relation.through_table, options.transaction)
            joins = await executor.select(
                through,
                [through.c[relation.source_key], through.c[relation.key]],
                where=[through.c[relation.source_key].in_(ids)],
                transaction=options.transaction,
            )
            related_ids = list({join[relation.key] for join in joins})
            related_rows = await executor.select(
                table, where=[table.c.id.in_(related_ids)], transaction=options.transaction
            )
            return related_rows, joins


def _graft(
    row: dict, relation: RelationDefinition, related_rows: list[dict], joins: list[dict]
) -> Any:
    match relation.kind:
        case RelationKind.BELONGS_TO:
            foreign_id = row.get(relation.key)
            return next((dict(r) for r in related_rows if r["id"] == foreign_id), None)
        case RelationKind.HAS_MANY:
            return [dict(r) for r in related_rows if r[relation.key] == row["id"]]
        case RelationKind.HAS_ONE:
            return next(
                (dict(r) for r in related_rows if r[relation.key] == row["id"]), None
            )
        case RelationKind.HAS_AND_BELONGS_TO_MANY:
            joined = {
                join[relation.key]
                for join in joins
                if join[relation.source_key] == row["id"]
            }
            return [dict(r) for r in related_rows if r["id"] in joined]


async def include_relations(
    model: "Model",
    rows: list[dict],
    names: tuple[str, ...] | list[str],
    options: QueryOptions | None = None,
) -> list[dict]:
    """Graft the named relations onto copies of ``rows``.

    Returns ``rows`` unchanged when either argument is empty.

    Raises:
        UnknownRelationName: If a name is not a registered relation of
            ``model``.  Checked before any query is issued.
    """
    if not rows or not names:
        return rows

    options = options or QueryOptions()
    relations = []
    for name in names:
        if name not in model.relations:
            raise UnknownRelationName(
                f'There is no "{name}" relation on {model.table_name}'
            )
        relations.append(model.relations[name])

    loaded = await gather_scoped(
        (_load(model, relation, rows, options) for relation in relations), options
    )
    logger.debug(
        "Included %s on %d %s rows", ", ".join(names), len(rows), model.table_name
    )

    results = []
    for row in rows:
        result = dict(row)
        for relation, (related_rows, joins) in zip(relations, loaded):
            result[relation.name] = _graft(result, relation, related_rows, joins)
        results.append(result)
    return results
