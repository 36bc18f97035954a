"""Exception taxonomy for db-mapper.

Registry, projector, and lookup failures derive from ``MapperError`` and
propagate to the caller.  Storage failures are SQLAlchemy exceptions and are
never wrapped, except for reflection of a missing table (``NoSuchTable``).

Usage:
    from db_mapper.errors import ContextNotFound, OperationCancelled

    def before_save(record, options):
        if not record.get("name"):
            raise OperationCancelled("name is required")
"""


class MapperError(Exception):
    """Base class for all db-mapper errors."""


class UnknownRelationKind(MapperError):
    """Raised when a relation declaration names no kind, or more than one."""


class UnknownRelationName(MapperError):
    """Raised when an include or save references an unregistered relation."""


class ContextNotFound(MapperError):
    """Raised when a named context is requested but not registered."""


class NoSuchTable(MapperError):
    """Raised when schema introspection targets a table that does not exist."""


class NotConnectedError(MapperError):
    """Raised when a query is issued before the database is connected."""


class OperationCancelled(MapperError):
    """Raise from a before-hook to cancel the current save or destroy.

    The operation returns the caller's original record unchanged; the
    exception is not re-raised.
    """
