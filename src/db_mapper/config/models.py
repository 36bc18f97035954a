"""Pydantic models for database configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    echo: bool = False  # Log every statement SQLAlchemy emits


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    default_profile: str | None = None
