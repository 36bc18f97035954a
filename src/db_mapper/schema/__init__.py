"""Table schema introspection.

Usage:
    from db_mapper.schema import TableSchema, ColumnSchema, describe_table
"""

from db_mapper.schema.introspector import describe_table, normalize_data_type
from db_mapper.schema.models import ColumnSchema, TableSchema

__all__ = [
    "describe_table",
    "normalize_data_type",
    "ColumnSchema",
    "TableSchema",
]
