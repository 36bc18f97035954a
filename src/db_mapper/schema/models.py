"""Pydantic models for introspected table schemas."""

from pydantic import BaseModel, Field


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a database column."""

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    max_length: int | None = None  # Only for sized string types
    is_primary_key: bool = False


class TableSchema(BaseModel):
    """Schema for a database table, keyed by column name in table order."""

    name: str
    columns: dict[str, ColumnSchema] = Field(default_factory=dict)

    def __contains__(self, column: str) -> bool:
        return column in self.columns

    def __getitem__(self, column: str) -> ColumnSchema:
        return self.columns[column]

    @property
    def column_names(self) -> list[str]:
        """Column names in table order."""
        return list(self.columns)
