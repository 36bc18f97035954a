"""Relation declarations and their canonical definitions.

A table declares relations with a short mapping per relation name.  Exactly
one of the four kind keys must be present; everything else is optional and
defaults from the relation name and the owning table:

    relations = {
        "user": {"belongsTo": "user"},
        "tasks": {"hasMany": "task", "dependent": True},
        "profile": {"hasOne": "profile"},
        "projects": {"hasAndBelongsToMany": "project"},
    }

Default derivation, for an owning table ``users``:

- ``table_name``: ``table``, else the pluralized target (the kind value when it
  is a string, otherwise the relation name).  hasAndBelongsToMany always
  pluralizes the relation name, like its key and join table, so
  ``"members": {"hasAndBelongsToMany": "user"}`` targets ``members`` unless
  ``table`` says otherwise.
- ``key``: ``foreignKey``, else ``<singular relation name>Id`` for
  belongsTo and hasAndBelongsToMany, ``<singular owner>Id`` (``userId``) for
  hasMany and hasOne.
- ``source_key`` (hasAndBelongsToMany): ``primaryKey``, else ``userId``.
- ``through_table`` (hasAndBelongsToMany): ``through``, else the owner table
  and pluralized relation name sorted and joined with ``_``
  (``projects_users``).
"""

from enum import StrEnum
from typing import Any

import inflection
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from db_mapper.errors import UnknownRelationKind


class RelationKind(StrEnum):
    BELONGS_TO = "belongsTo"
    HAS_MANY = "hasMany"
    HAS_ONE = "hasOne"
    HAS_AND_BELONGS_TO_MANY = "hasAndBelongsToMany"


class RelationDeclaration(BaseModel):
    """Relation shorthand as written by the caller (camelCase or snake_case)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    belongs_to: str | bool | None = Field(
        default=None, validation_alias=AliasChoices("belongsTo", "belongs_to")
    )
    has_many: str | bool | None = Field(
        default=None, validation_alias=AliasChoices("hasMany", "has_many")
    )
    has_one: str | bool | None = Field(
        default=None, validation_alias=AliasChoices("hasOne", "has_one")
    )
    has_and_belongs_to_many: str | bool | None = Field(
        default=None,
        validation_alias=AliasChoices("hasAndBelongsToMany", "has_and_belongs_to_many"),
    )
    table: str | None = None
    foreign_key: str | None = Field(
        default=None, validation_alias=AliasChoices("foreignKey", "foreign_key")
    )
    primary_key: str | None = Field(
        default=None, validation_alias=AliasChoices("primaryKey", "primary_key")
    )
    through: str | None = None
    dependent: bool = False

    def kinds(self) -> list[tuple[RelationKind, str | bool]]:
        """Kind keys that are present, with their declared target."""
        declared = (
            (RelationKind.BELONGS_TO, self.belongs_to),
            (RelationKind.HAS_MANY, self.has_many),
            (RelationKind.HAS_ONE, self.has_one),
            (RelationKind.HAS_AND_BELONGS_TO_MANY, self.has_and_belongs_to_many),
        )
        return [(kind, target) for kind, target in declared if target]


class RelationDefinition(BaseModel):
    """Canonical, fully-defaulted relation."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: RelationKind
    table_name: str
    key: str
    source_key: str | None = None
    through_table: str | None = None
    dependent: bool = False

    @property
    def many(self) -> bool:
        return self.kind in (RelationKind.HAS_MANY, RelationKind.HAS_AND_BELONGS_TO_MANY)


def _foreign_key(name: str) -> str:
    return f"{inflection.singularize(name)}Id"


def build_relation(
    table_name: str, name: str, declaration: RelationDeclaration | dict[str, Any]
) -> RelationDefinition:
    """Normalize one relation declaration owned by ``table_name``.

    Raises:
        UnknownRelationKind: If no kind key (or more than one) is declared,
            or the declaration has unknown keys.
    """
    if not isinstance(declaration, RelationDeclaration):
        try:
            declaration = RelationDeclaration.model_validate(declaration)
        except ValidationError as e:
            raise UnknownRelationKind(
                f'Invalid declaration for relation "{name}" on {table_name}: {e}'
            ) from e

    kinds = declaration.kinds()
    if len(kinds) != 1:
        found = ", ".join(kind.value for kind, _ in kinds) or "none"
        raise UnknownRelationKind(
            f'Relation "{name}" on {table_name} must declare exactly one of '
            f"belongsTo, hasMany, hasOne, hasAndBelongsToMany (found: {found})"
        )
    kind, target = kinds[0]

    target_name = target if isinstance(target, str) else name
    related_table = declaration.table or inflection.pluralize(target_name)

    match kind:
        case RelationKind.BELONGS_TO:
            return RelationDefinition(
                name=name,
                kind=kind,
                table_name=related_table,
                key=declaration.foreign_key or _foreign_key(name),
                dependent=declaration.dependent,
            )
        case RelationKind.HAS_MANY | RelationKind.HAS_ONE:
            return RelationDefinition(
                name=name,
                kind=kind,
                table_name=related_table,
                key=declaration.foreign_key or _foreign_key(table_name),
                dependent=declaration.dependent,
            )
        case RelationKind.HAS_AND_BELONGS_TO_MANY:
            through = declaration.through or "_".join(
                sorted([table_name, inflection.pluralize(name)])
            )
            # Join rows are always removed with the owner; the related rows never are
            return RelationDefinition(
                name=name,
                kind=kind,
                table_name=declaration.table or inflection.pluralize(name),
                key=declaration.foreign_key or _foreign_key(name),
                source_key=declaration.primary_key or _foreign_key(table_name),
                through_table=through,
                dependent=False,
            )


def build_relations(
    table_name: str, declarations: dict[str, RelationDeclaration | dict[str, Any]] | None
) -> dict[str, RelationDefinition]:
    """Normalize every relation declared for ``table_name``, keyed by name."""
    return {
        name: build_relation(table_name, name, declaration)
        for name, declaration in (declarations or {}).items()
    }
