"""Tests for package exports and public API.

Verifies that the __init__.py files export the expected names and that
every name listed in __all__ is reachable.
"""

import importlib

import pytest


# ============================================================================
# Top-level package exports
# ============================================================================


class TestTopLevelExports:
    """Tests for src/db_mapper/__init__.py exports."""

    def test_version_defined(self) -> None:
        import db_mapper

        assert db_mapper.__version__ == "0.1.0"

    def test_all_names_are_importable(self) -> None:
        """Every name in __all__ is actually accessible on the module."""
        import db_mapper

        assert len(db_mapper.__all__) > 0
        for name in db_mapper.__all__:
            assert hasattr(db_mapper, name), (
                f"'{name}' is in __all__ but not accessible on db_mapper"
            )

    def test_core_exports(self) -> None:
        from db_mapper import Database, Model, QueryOptions

        assert isinstance(Database, type)
        assert isinstance(Model, type)
        assert isinstance(QueryOptions, type)

    def test_errors_share_base(self) -> None:
        from db_mapper import (
            ContextNotFound,
            MapperError,
            NoSuchTable,
            NotConnectedError,
            OperationCancelled,
            UnknownRelationKind,
            UnknownRelationName,
        )

        for error in (
            ContextNotFound,
            NoSuchTable,
            NotConnectedError,
            OperationCancelled,
            UnknownRelationKind,
            UnknownRelationName,
        ):
            assert issubclass(error, MapperError)


# ============================================================================
# Subpackage exports
# ============================================================================


@pytest.mark.parametrize(
    "module_name",
    [
        "db_mapper.adapters",
        "db_mapper.config",
        "db_mapper.relations",
        "db_mapper.schema",
    ],
)
def test_subpackage_all_is_accurate(module_name: str) -> None:
    """Each subpackage defines __all__ and exposes every listed name."""
    module = importlib.import_module(module_name)

    assert isinstance(module.__all__, list)
    for name in module.__all__:
        assert hasattr(module, name), f"'{name}' missing from {module_name}"
