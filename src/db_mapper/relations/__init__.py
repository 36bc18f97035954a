"""Relation registry, persistence strategies, and eager loading.

Usage:
    from db_mapper.relations import build_relations, RelationKind

    relations = build_relations("users", {"projects": {"hasAndBelongsToMany": "project"}})
    relations["projects"].through_table  # "projects_users"
"""

from db_mapper.relations.loader import include_relations
from db_mapper.relations.registry import (
    RelationDeclaration,
    RelationDefinition,
    RelationKind,
    build_relation,
    build_relations,
)
from db_mapper.relations.strategies import SavedRelation, save_relation

__all__ = [
    "RelationDeclaration",
    "RelationDefinition",
    "RelationKind",
    "SavedRelation",
    "build_relation",
    "build_relations",
    "include_relations",
    "save_relation",
]
