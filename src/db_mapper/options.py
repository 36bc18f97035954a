"""Per-call options threaded through saves, destroys, and reads."""

import asyncio
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncConnection

T = TypeVar("T")


@dataclass(frozen=True)
class QueryOptions:
    """Options for one persistence call.

    Attributes:
        transaction: Connection every statement of the call runs on.
        exists: Skip the existence query and treat the record as persisted
            (``True``) or new (``False``).
        updated_at: Timestamp shared by a save and every nested save.
        skip_hooks: Bypass all lifecycle hooks.
    """

    transaction: AsyncConnection | None = None
    exists: bool | None = None
    updated_at: datetime | None = None
    skip_hooks: bool = False


async def gather_scoped(
    awaitables: Iterable[Awaitable[T]], options: QueryOptions
) -> list[T]:
    """Await ``awaitables`` concurrently, or one at a time inside a transaction.

    A single ``AsyncConnection`` cannot run statements concurrently, so work
    bound to a transaction is serialized in the given order.
    """
    if options.transaction is None:
        return list(await asyncio.gather(*awaitables))
    results: list[Any] = []
    for awaitable in awaitables:
        results.append(await awaitable)
    return results
