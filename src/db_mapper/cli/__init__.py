"""CLI for inspecting database profiles and table schemas.

Usage:
    db-mapper profiles
    db-mapper schema users
    APP_DB_PROFILE=local db-mapper --env-prefix APP_ schema users
    db-mapper schema users --url sqlite:///./app.db

Commands:
    profiles  - List available profiles
    schema    - Show the introspected columns of a table
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from db_mapper.config.loader import load_db_config
from db_mapper.database import Database
from db_mapper.errors import NoSuchTable
from db_mapper.factory import (
    ProfileNotFoundError,
    get_active_profile_name,
    get_database_url,
)

console = Console()


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_schema(args: argparse.Namespace) -> int:
    """Async implementation for schema command.

    Args:
        args: Parsed arguments with table, profile, url, env_prefix, config.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        url = get_database_url(
            url=args.url,
            profile=args.profile,
            env_prefix=args.env_prefix,
            config_path=args.config,
        )
    except (ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    database = Database(url)
    try:
        schema = await database.model(args.table).schema()
    except NoSuchTable as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1
    finally:
        await database.disconnect()

    table = Table(title=f"Table: {schema.name}")
    table.add_column("Column", style="cyan")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Default", style="dim")
    table.add_column("Max Length", justify="right")

    for column in schema.columns.values():
        name = f"{column.name} [bold](pk)[/bold]" if column.is_primary_key else column.name
        table.add_row(
            name,
            column.data_type,
            "yes" if column.is_nullable else "no",
            column.default or "",
            str(column.max_length) if column.max_length is not None else "",
        )

    console.print(table)
    return 0


# ============================================================================
# Command handlers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Args:
        args: Parsed arguments with env_prefix and config.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = load_db_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    current = get_active_profile_name(args.env_prefix) or config.default_profile

    table = Table(title="Database Profiles")
    table.add_column("Profile", style="cyan")
    table.add_column("Description")
    table.add_column("Echo", justify="center")

    for name, profile in config.profiles.items():
        marker = " [bold green]*[/bold green]" if name == current else ""
        table.add_row(f"{name}{marker}", profile.description, "yes" if profile.echo else "")

    console.print(table)

    if current:
        console.print(f"\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_schema(args: argparse.Namespace) -> int:
    """Show table schema.

    Wraps the async implementation with ``asyncio.run()``.

    Args:
        args: Parsed arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_schema(args))


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="db-mapper",
        description="Inspect db-mapper database profiles and table schemas",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output, including every statement executed",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # schema command
    p_schema = subparsers.add_parser(
        "schema",
        help="Show the introspected columns of a table",
    )
    p_schema.add_argument("table", help="Table name")
    p_schema.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Profile to connect with (default: env var or [defaults] profile)",
    )
    p_schema.add_argument(
        "--url",
        default=None,
        help="Connection URL, overriding any profile",
    )
    p_schema.set_defaults(func=cmd_schema)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.verbose:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
