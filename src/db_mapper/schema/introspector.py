"""Column introspection over reflected SQLAlchemy tables.

Turns a reflected ``sqlalchemy.Table`` into a ``TableSchema``: data type,
nullability, server default, and maximum length per column.  Works for any
dialect the executor can reflect (PostgreSQL, SQLite).

Usage:
    from db_mapper.schema.introspector import describe_table

    table = await executor.reflect("users")
    schema = describe_table(table, executor.dialect)
    schema["email"].max_length
"""

import re

import sqlalchemy as sa
from sqlalchemy.engine import Dialect

from db_mapper.schema.models import ColumnSchema, TableSchema

# Verbose type names mapped to the short names used in TableSchema
_TYPE_MAP = {
    "character varying": "varchar",
    "character": "char",
    "timestamp with time zone": "timestamptz",
    "timestamp without time zone": "timestamp",
    "integer": "int",
    "boolean": "bool",
    "datetime": "timestamp",
}

_TYPE_ARGS = re.compile(r"\(.*\)$")


def normalize_data_type(data_type: str) -> str:
    """Normalize a compiled column type to a short lowercase name.

    Strips length/precision arguments and maps verbose names.

    Examples:
        >>> normalize_data_type("VARCHAR(255)")
        'varchar'
        >>> normalize_data_type("timestamp without time zone")
        'timestamp'
    """
    name = _TYPE_ARGS.sub("", data_type.strip()).lower()
    return _TYPE_MAP.get(name, name)


def _compile_type(column: sa.Column, dialect: Dialect) -> str:
    try:
        return column.type.compile(dialect=dialect)
    except sa.exc.CompileError:
        # Reflected types the dialect cannot render (NullType)
        return type(column.type).__name__


def describe_table(table: sa.Table, dialect: Dialect) -> TableSchema:
    """Build a ``TableSchema`` from a reflected table.

    Args:
        table: Table reflected with ``autoload_with``.
        dialect: Dialect used to render column types.

    Returns:
        ``TableSchema`` with one ``ColumnSchema`` per column, in table order.
    """
    columns: dict[str, ColumnSchema] = {}
    for column in table.columns:
        default = None
        if column.server_default is not None:
            default = str(getattr(column.server_default, "arg", column.server_default))

        columns[column.name] = ColumnSchema(
            name=column.name,
            data_type=normalize_data_type(_compile_type(column, dialect)),
            is_nullable=bool(column.nullable) and not column.primary_key,
            default=default,
            max_length=getattr(column.type, "length", None),
            is_primary_key=column.primary_key,
        )

    return TableSchema(name=table.name, columns=columns)
