"""db-mapper: Async record mapping with relations, hooks, and contexts.

Binds plain dict records to table rows through SQLAlchemy's async engine,
saving and eager-loading belongsTo / hasMany / hasOne / hasAndBelongsToMany
relations, running lifecycle hooks, and projecting records through named
contexts.

Usage:
    from db_mapper import Database, get_database
    from db_mapper import QueryExecutor, AsyncSQLAlchemyExecutor
    from db_mapper import ContextNotFound, OperationCancelled
    from db_mapper import load_db_config, DatabaseProfile, DatabaseConfig
"""

__version__ = "0.1.0"

# Adapters
from db_mapper.adapters.async_sqlalchemy import AsyncSQLAlchemyExecutor
from db_mapper.adapters.base import QueryExecutor

# Config
from db_mapper.config.loader import load_db_config
from db_mapper.config.models import DatabaseConfig, DatabaseProfile

# Core
from db_mapper.database import Database
from db_mapper.model import Model
from db_mapper.options import QueryOptions
from db_mapper.relations.registry import RelationDefinition, RelationKind

# Errors
from db_mapper.errors import (
    ContextNotFound,
    MapperError,
    NoSuchTable,
    NotConnectedError,
    OperationCancelled,
    UnknownRelationKind,
    UnknownRelationName,
)

# Factory
from db_mapper.factory import (
    ProfileNotFoundError,
    get_database,
    get_database_url,
    reset_database,
    resolve_url,
)

# Utilities
from db_mapper.util import filter_keys, hashify, slugify, uuid

__all__ = [
    # Adapters
    "QueryExecutor",
    "AsyncSQLAlchemyExecutor",
    # Config
    "load_db_config",
    "DatabaseProfile",
    "DatabaseConfig",
    # Core
    "Database",
    "Model",
    "QueryOptions",
    "RelationDefinition",
    "RelationKind",
    # Errors
    "MapperError",
    "UnknownRelationKind",
    "UnknownRelationName",
    "ContextNotFound",
    "NoSuchTable",
    "NotConnectedError",
    "OperationCancelled",
    # Factory
    "get_database",
    "get_database_url",
    "reset_database",
    "resolve_url",
    "ProfileNotFoundError",
    # Utilities
    "uuid",
    "hashify",
    "slugify",
    "filter_keys",
]
