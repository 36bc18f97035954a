"""Context projection: shaping records into named external views.

A context is either a list of field names to keep or a callable that maps a
record to any value.  Listed fields that are relations are projected through
the related table's context of the same name, or its ``default``.

Usage:
    users = db.model("users", contexts={
        "simple": ["firstName", "lastName"],
        "display": lambda user: {"name": f"{user['firstName']} {user['lastName']}"},
    })
    users.with_context(user, "simple")
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from db_mapper.errors import ContextNotFound

if TYPE_CHECKING:
    from db_mapper.model import Model

DEFAULT_CONTEXT = "default"

ContextFunction = Callable[[dict[str, Any]], Any]
ContextDefinition = list[str] | tuple[str, ...] | ContextFunction


def project(
    model: "Model",
    record: dict | list[dict] | None,
    context: str | ContextDefinition = DEFAULT_CONTEXT,
) -> Any:
    """Project ``record`` (or each record of a list) through ``context``.

    Args:
        model: Handle whose contexts and relations apply.
        record: Record or list of records.
        context: Context name, field list, or callable.

    Returns:
        The projected value; the input itself when the default context is
        requested but none is registered.

    Raises:
        ContextNotFound: If a named context is not registered.
    """
    if isinstance(record, list):
        return [project(model, r, context) for r in record]
    if record is None:
        return None

    context_name = DEFAULT_CONTEXT
    if isinstance(context, str):
        context_name = context
        if context not in model.contexts:
            if context == DEFAULT_CONTEXT:
                return record
            raise ContextNotFound(
                f'There is no context called "{context}" on {model.table_name}'
            )
        context = model.contexts[context]

    if callable(context):
        return context(dict(record))

    fields = list(context)
    if not fields or fields[0] == "*":
        return record

    projected: dict[str, Any] = {}
    for field in fields:
        value = record.get(field)
        if value is None:
            continue

        relation = model.relations.get(field)
        if relation is None:
            projected[field] = value
            continue

        related = model.related(relation)
        nested = context_name if context_name in related.contexts else DEFAULT_CONTEXT
        projected[field] = project(related, value, nested)

    return projected
