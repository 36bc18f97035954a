"""Tests for context projection."""

import pytest

from db_mapper.errors import ContextNotFound

USER = {
    "id": "u1",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "password": "secret",
}


@pytest.fixture
def users(offline_db):
    offline_db.model(
        "projects",
        contexts={
            "simple": ["name"],
            "default": ["id", "name"],
        },
    )
    offline_db.model("tasks", contexts={"default": ["title"]})
    offline_db.model("profiles")
    return offline_db.model(
        "users",
        relations={
            "projects": {"hasAndBelongsToMany": "project"},
            "tasks": {"hasMany": "task"},
            "profile": {"hasOne": "profile"},
        },
        contexts={
            "simple": ["firstName", "lastName"],
            "withProjects": ["firstName", "projects"],
            "withTasks": ["firstName", "tasks"],
            "withProfile": ["firstName", "profile"],
            "everything": ["*"],
            "nothing": [],
            "display": lambda user: {"name": f"{user['firstName']} {user['lastName']}"},
        },
    )


class TestWithContext:
    """Named, list, and callable contexts."""

    def test_field_list(self, users) -> None:
        assert users.with_context(USER, "simple") == {"firstName": "Ada", "lastName": "Lovelace"}

    def test_missing_fields_are_skipped(self, users) -> None:
        assert users.with_context({"firstName": "Ada", "lastName": None}, "simple") == {
            "firstName": "Ada"
        }

    def test_callable_context(self, users) -> None:
        assert users.with_context(USER, "display") == {"name": "Ada Lovelace"}

    def test_callable_gets_a_copy(self, offline_db) -> None:
        def mutate(record):
            record["firstName"] = "Changed"
            return record

        model = offline_db.model("people", contexts={"mutate": mutate})
        record = dict(USER)
        model.with_context(record, "mutate")
        assert record["firstName"] == "Ada"

    def test_inline_field_list(self, users) -> None:
        assert users.with_context(USER, ["email"]) == {"email": "ada@example.com"}

    def test_inline_callable(self, users) -> None:
        assert users.with_context(USER, lambda user: user["id"]) == "u1"

    def test_list_input_maps_each_record(self, users) -> None:
        other = {**USER, "firstName": "Grace", "lastName": "Hopper"}
        assert users.with_context([USER, other], "simple") == [
            {"firstName": "Ada", "lastName": "Lovelace"},
            {"firstName": "Grace", "lastName": "Hopper"},
        ]

    def test_star_and_empty_pass_through(self, users) -> None:
        assert users.with_context(USER, "everything") is USER
        assert users.with_context(USER, "nothing") is USER

    def test_default_without_default_context_passes_through(self, users) -> None:
        assert users.with_context(USER) is USER

    def test_default_context_is_used(self, offline_db) -> None:
        model = offline_db.model("accounts", contexts={"default": ["id"]})
        assert model.with_context(USER) == {"id": "u1"}

    def test_unknown_context_raises(self, users) -> None:
        with pytest.raises(ContextNotFound, match="missing"):
            users.with_context(USER, "missing")

    def test_unknown_context_without_any_contexts(self, offline_db) -> None:
        model = offline_db.model("plain")
        with pytest.raises(ContextNotFound):
            model.with_context(USER, "simple")


class TestNestedContexts:
    """Relation fields recurse into the related table's contexts."""

    def test_same_named_related_context(self, users) -> None:
        user = {**USER, "projects": [{"id": "p1", "name": "Engine", "budget": 10}]}
        # "withProjects" is not defined on projects, so its default applies
        assert users.with_context(user, "withProjects") == {
            "firstName": "Ada",
            "projects": [{"id": "p1", "name": "Engine"}],
        }

    def test_related_default_context(self, users) -> None:
        user = {**USER, "tasks": [{"id": "t1", "title": "Write", "userId": "u1"}]}
        assert users.with_context(user, "withTasks") == {
            "firstName": "Ada",
            "tasks": [{"title": "Write"}],
        }

    def test_related_without_contexts_passes_through(self, users) -> None:
        profile = {"id": "pr1", "bio": "Mathematician"}
        user = {**USER, "profile": profile}
        assert users.with_context(user, "withProfile") == {"firstName": "Ada", "profile": profile}

    def test_related_context_with_same_name(self, offline_db) -> None:
        offline_db.model("projects", contexts={"simple": ["name"], "default": ["id", "name"]})
        owners = offline_db.model(
            "owners",
            relations={"projects": {"hasMany": "project"}},
            contexts={"simple": ["projects"]},
        )
        record = {"projects": [{"id": "p1", "name": "Engine"}]}
        assert owners.with_context(record, "simple") == {"projects": [{"name": "Engine"}]}
