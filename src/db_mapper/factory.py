"""Database factory: resolve a connection URL and hold the process database.

URL resolution priority (``get_database_url``):

1. Explicit ``url`` argument
2. Explicit ``profile`` argument, looked up in db.toml
3. ``{env_prefix}DB_PROFILE`` env var, looked up in db.toml
4. ``[defaults] profile`` from db.toml
5. ``{env_prefix}DATABASE_URL`` env var
6. Raise ``ProfileNotFoundError``

Usage:
    from db_mapper.factory import get_database

    db = get_database(env_prefix="APP_")
    users = db.model("users")
"""

import os
from pathlib import Path
from urllib.parse import quote

from db_mapper.config.loader import load_db_config
from db_mapper.config.models import DatabaseConfig, DatabaseProfile
from db_mapper.database import Database

# Process-level database
_database: Database | None = None


class ProfileNotFoundError(Exception):
    """Raised when no database profile or URL is configured."""

    pass


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with ``[YOUR-PASSWORD]`` replaced by the URL-quoted
        ``db_password``
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_active_profile_name(env_prefix: str = "") -> str | None:
    """Profile named by the ``{env_prefix}DB_PROFILE`` env var, if set."""
    return os.environ.get(f"{env_prefix}DB_PROFILE") or None


def _load_config(config_path: Path | str | None) -> DatabaseConfig | None:
    try:
        return load_db_config(config_path)
    except FileNotFoundError:
        return None


def _profile_url(config: DatabaseConfig | None, name: str) -> str:
    if config is None:
        raise ProfileNotFoundError(
            f"Profile '{name}' requested but no db.toml was found."
        )
    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in db.toml.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )
    return resolve_url(config.profiles[name])


def get_database_url(
    url: str | None = None,
    profile: str | None = None,
    env_prefix: str = "",
    config_path: Path | str | None = None,
) -> str:
    """Resolve the connection URL.

    Args:
        url: Explicit URL; wins over everything else.
        profile: Explicit profile name.
        env_prefix: Prefix for env var lookup (e.g. ``"APP_"`` reads
            ``APP_DB_PROFILE`` and ``APP_DATABASE_URL``).
        config_path: Path to db.toml (default: ./db.toml).

    Returns:
        Connection URL.

    Raises:
        ProfileNotFoundError: If nothing is configured, or a named profile
            does not exist.
        ValueError: If db.toml is invalid.

    Example:
        >>> get_database_url(url="sqlite:///./app.db")
        'sqlite:///./app.db'
    """
    if url:
        return url

    config = _load_config(config_path)

    if profile:
        return _profile_url(config, profile)

    env_profile = get_active_profile_name(env_prefix)
    if env_profile:
        return _profile_url(config, env_profile)

    if config is not None and config.default_profile:
        return _profile_url(config, config.default_profile)

    env_url = os.environ.get(f"{env_prefix}DATABASE_URL")
    if env_url:
        return env_url

    raise ProfileNotFoundError(
        "No database configuration found.\n"
        "Either:\n"
        f"  1. Create db.toml and set {env_prefix}DB_PROFILE=<name> "
        "(or [defaults] profile)\n"
        f"  2. Set {env_prefix}DATABASE_URL"
    )


def get_database(
    url: str | None = None,
    profile: str | None = None,
    env_prefix: str = "",
    config_path: Path | str | None = None,
) -> Database:
    """Get the process-level database, creating it on first use.

    Arguments are only used on the first call; afterwards the cached
    database is returned until ``reset_database()``.

    Raises:
        ProfileNotFoundError: If no database configuration found
    """
    global _database
    if _database is not None:
        return _database

    database_url = get_database_url(url, profile, env_prefix, config_path)

    echo = False
    config = _load_config(config_path)
    name = profile or get_active_profile_name(env_prefix) or (config and config.default_profile)
    if not url and config is not None and name in config.profiles:
        echo = config.profiles[name].echo

    _database = Database(database_url, echo=echo)
    return _database


async def reset_database() -> None:
    """Disconnect and clear the process-level database (useful for testing)."""
    global _database
    if _database is not None:
        await _database.disconnect()
        _database = None
