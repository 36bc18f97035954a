"""Tests for relation declaration normalization."""

import pytest
from pydantic import ValidationError

from db_mapper.errors import UnknownRelationKind
from db_mapper.relations.registry import (
    RelationDeclaration,
    RelationKind,
    build_relation,
    build_relations,
)


# ============================================================================
# Test: Kind Detection
# ============================================================================


class TestRelationKinds:
    """Every declaration resolves to exactly one kind."""

    def test_camel_case_keys(self) -> None:
        relation = build_relation("tasks", "user", {"belongsTo": "user"})
        assert relation.kind is RelationKind.BELONGS_TO

    def test_snake_case_keys(self) -> None:
        relation = build_relation("users", "tasks", {"has_many": "task", "foreign_key": "ownerId"})
        assert relation.kind is RelationKind.HAS_MANY
        assert relation.key == "ownerId"

    def test_no_kind_raises(self) -> None:
        with pytest.raises(UnknownRelationKind):
            build_relation("users", "tasks", {"table": "tasks"})

    def test_two_kinds_raise(self) -> None:
        """A declaration naming two kinds is ambiguous."""
        with pytest.raises(UnknownRelationKind, match="exactly one"):
            build_relation("users", "tasks", {"hasMany": "task", "hasOne": "task"})

    def test_unknown_key_raises(self) -> None:
        with pytest.raises(UnknownRelationKind):
            build_relation("users", "tasks", {"hasMany": "task", "cascade": True})

    def test_accepts_declaration_model(self) -> None:
        declaration = RelationDeclaration.model_validate({"hasOne": "profile"})
        relation = build_relation("users", "profile", declaration)
        assert relation.kind is RelationKind.HAS_ONE

    def test_many(self) -> None:
        relations = build_relations(
            "users",
            {
                "tasks": {"hasMany": "task"},
                "projects": {"hasAndBelongsToMany": "project"},
                "profile": {"hasOne": "profile"},
                "team": {"belongsTo": "team"},
            },
        )
        assert relations["tasks"].many
        assert relations["projects"].many
        assert not relations["profile"].many
        assert not relations["team"].many


# ============================================================================
# Test: Default Derivation
# ============================================================================


class TestDefaults:
    """Table names, keys, and join tables default from names."""

    def test_belongs_to_defaults(self) -> None:
        relation = build_relation("tasks", "user", {"belongsTo": "user"})
        assert relation.table_name == "users"
        assert relation.key == "userId"
        assert relation.dependent is False

    def test_belongs_to_key_uses_relation_name(self) -> None:
        """The foreign key follows the relation name, not the target."""
        relation = build_relation("projects", "owner", {"belongsTo": "user"})
        assert relation.table_name == "users"
        assert relation.key == "ownerId"

    def test_has_many_defaults(self) -> None:
        relation = build_relation("users", "tasks", {"hasMany": "task"})
        assert relation.table_name == "tasks"
        assert relation.key == "userId"

    def test_has_one_defaults(self) -> None:
        relation = build_relation("people", "profile", {"hasOne": "profile"})
        assert relation.table_name == "profiles"
        assert relation.key == "personId"

    def test_boolean_kind_uses_relation_name(self) -> None:
        relation = build_relation("users", "tasks", {"hasMany": True})
        assert relation.table_name == "tasks"

    def test_habtm_defaults(self) -> None:
        relation = build_relation("users", "projects", {"hasAndBelongsToMany": "project"})
        assert relation.table_name == "projects"
        assert relation.through_table == "projects_users"
        assert relation.key == "projectId"
        assert relation.source_key == "userId"

    def test_habtm_join_table_is_sorted(self) -> None:
        relation = build_relation("projects", "users", {"hasAndBelongsToMany": "user"})
        assert relation.through_table == "projects_users"
        assert relation.source_key == "projectId"
        assert relation.key == "userId"

    def test_habtm_table_follows_relation_name(self) -> None:
        relation = build_relation("projects", "members", {"hasAndBelongsToMany": "user"})
        assert relation.table_name == "members"
        assert relation.key == "memberId"
        assert relation.through_table == "members_projects"

        explicit = build_relation(
            "projects", "members", {"hasAndBelongsToMany": "user", "table": "users"}
        )
        assert explicit.table_name == "users"

    def test_habtm_never_dependent(self) -> None:
        relation = build_relation(
            "users", "projects", {"hasAndBelongsToMany": "project", "dependent": True}
        )
        assert relation.dependent is False

    def test_explicit_overrides_win(self) -> None:
        relation = build_relation(
            "users",
            "projects",
            {
                "hasAndBelongsToMany": "project",
                "table": "work_projects",
                "through": "memberships",
                "foreignKey": "workProjectId",
                "primaryKey": "memberId",
            },
        )
        assert relation.table_name == "work_projects"
        assert relation.through_table == "memberships"
        assert relation.key == "workProjectId"
        assert relation.source_key == "memberId"

    def test_dependent_flag(self) -> None:
        relation = build_relation("users", "tasks", {"hasMany": "task", "dependent": True})
        assert relation.dependent is True

    def test_definitions_are_frozen(self) -> None:
        relation = build_relation("users", "tasks", {"hasMany": "task"})
        with pytest.raises(ValidationError):
            relation.key = "otherId"

    def test_empty_declarations(self) -> None:
        assert build_relations("users", None) == {}
