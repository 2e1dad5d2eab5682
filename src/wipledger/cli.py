# src/wipledger/cli.py
"""wipledger Command Line Interface.

Operator commands for the board database: create the schema, inspect the
ledger, rewind, emergency blow and verify.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from wipledger import __version__
from wipledger.contracts.errors import BoardError, MaintenanceModeError, NotFoundError, PayloadDecodeError, PersistenceError
from wipledger.contracts.events import LedgerEvent
from wipledger.core.config import BoardSettings, load_settings

if TYPE_CHECKING:
    from wipledger.core.ledger.database import BoardDB
    from wipledger.core.notifications import NotificationDispatcher

__all__ = ["app"]

app = typer.Typer(
    name="wipledger",
    help="wipledger: event-sourced WIP board store.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"wipledger version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """wipledger: event-sourced WIP board store."""
    from wipledger.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)
    # Commands re-apply logging once settings are loaded; flags still win
    ctx.obj = {"verbose": verbose, "json_logs": json_logs}

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def resolve_database(database: str | None, settings_path: Path | None, *, must_exist: bool = True) -> tuple[str, BoardSettings]:
    """Resolve the database URL and settings from CLI options.

    Priority: --database > explicit --settings > ./settings.yaml. The
    settings are still loaded (for replay options) when --database is given.

    Args:
        database: Path or SQLAlchemy URL from --database
        settings_path: Path from --settings
        must_exist: Reject a --database path that does not exist yet

    Returns:
        Tuple of (database_url, settings)

    Raises:
        ValueError: If the database cannot be resolved or settings are invalid
    """
    if settings_path is None and Path("settings.yaml").exists():
        settings_path = Path("settings.yaml")

    settings = BoardSettings()
    if settings_path is not None:
        if not settings_path.exists():
            raise ValueError(f"Settings file not found: {settings_path}")
        try:
            settings = load_settings(settings_path)
        except (ValidationError, YamlParserError, YamlScannerError) as e:
            raise ValueError(f"Invalid settings in {settings_path}: {e}") from e

    if database:
        if "://" in database:
            return database, settings
        db_path = Path(database).expanduser().resolve()
        if must_exist and not db_path.exists():
            raise ValueError(f"Database file not found: {db_path}")
        return f"sqlite:///{db_path}", settings

    if settings_path is not None:
        return settings.database.url, settings

    raise ValueError("No database specified. Provide --database or a settings.yaml with database.url configured.")


def _open(ctx: typer.Context, database: str | None, settings: str | None, *, must_exist: bool = True) -> tuple[BoardDB, BoardSettings]:
    """Resolve and open the database, exiting with code 1 on failure."""
    from wipledger.core.ledger.database import BoardDB, SchemaCompatibilityError
    from wipledger.core.logging import configure_logging

    settings_path = Path(settings) if settings else None
    try:
        url, config = resolve_database(database, settings_path, must_exist=must_exist)
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None

    flags = ctx.obj or {}
    configure_logging(
        json_output=flags.get("json_logs", False) or config.logging.json_output,
        level="DEBUG" if flags.get("verbose", False) else config.logging.level,
    )

    try:
        db = BoardDB.from_url(url, busy_timeout_ms=config.database.busy_timeout_ms)
    except SchemaCompatibilityError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None
    return db, config


def _open_dispatcher(config: BoardSettings) -> NotificationDispatcher | None:
    """Dispatcher for the plugins named in settings, or None when there are none."""
    from wipledger.core.notifications import create_dispatcher

    if not config.notifications.plugins:
        return None
    try:
        return create_dispatcher(config.notifications)
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None


def _fail(error: BoardError) -> typer.Exit:
    """Print a BoardError the way operators expect and return the exit to raise."""
    if isinstance(error, NotFoundError):
        typer.secho(f"Not found: {error}", fg=typer.colors.RED, err=True)
    elif isinstance(error, MaintenanceModeError):
        typer.secho(f"Busy: {error}", fg=typer.colors.YELLOW, err=True)
    elif isinstance(error, PayloadDecodeError | PersistenceError):
        typer.secho(f"Operation failed: {error}", fg=typer.colors.RED, err=True)
    else:
        typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
    return typer.Exit(1)


_DATABASE_OPTION_HELP = "Path to the board database file (SQLite) or a SQLAlchemy URL."
_SETTINGS_OPTION_HELP = "Path to settings YAML file (default: ./settings.yaml when present)."


@app.command()
def init(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help=_DATABASE_OPTION_HELP),
    settings: str | None = typer.Option(None, "--settings", "-s", help=_SETTINGS_OPTION_HELP),
) -> None:
    """Create the board schema (idempotent)."""
    db, _ = _open(ctx, database, settings, must_exist=False)
    with db:
        typer.echo(f"Board database ready: {db.connection_string}")


@app.command()
def ledger(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help=_DATABASE_OPTION_HELP),
    settings: str | None = typer.Option(None, "--settings", "-s", help=_SETTINGS_OPTION_HELP),
    after: int | None = typer.Option(None, "--after", help="Only events with an id greater than this."),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum number of events."),
    json_output: bool = typer.Option(False, "--json", help="Output one JSON object per line."),
) -> None:
    """List ledger events in id order."""
    from wipledger.core.ledger.events import read_events

    db, _ = _open(ctx, database, settings)
    with db, db.read_connection() as conn:
        events = read_events(conn, after_id=after, limit=limit)

    for event in events:
        if isinstance(event, LedgerEvent):
            kind, payload, recognized = str(event.kind), event.payload, True
        else:
            kind, payload, recognized = event.raw_kind, event.raw_payload, False
        if json_output:
            record = {"id": event.event_id, "timestamp": event.timestamp, "kind": kind, "recognized": recognized, "payload": payload}
            typer.echo(json.dumps(record))
        else:
            marker = "" if recognized else " (unrecognized)"
            typer.echo(f"{event.event_id:>6}  {event.timestamp}  {kind}{marker}  {payload}")


@app.command()
def rewind(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help=_DATABASE_OPTION_HELP),
    settings: str | None = typer.Option(None, "--settings", "-s", help=_SETTINGS_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Truncate the board tables and rebuild them from the ledger."""
    from wipledger.core.ledger.gateway import BoardGateway

    if not yes:
        typer.confirm("Rewind truncates all board tables and replays the ledger. Continue?", abort=True)

    db, config = _open(ctx, database, settings)
    with db:
        dispatcher = _open_dispatcher(config)
        try:
            result = BoardGateway(db, settings=config, dispatcher=dispatcher).rewind()
        except BoardError as e:
            raise _fail(e) from None
        finally:
            if dispatcher is not None:
                dispatcher.close()

    typer.secho("Rewind completed.", fg=typer.colors.GREEN)
    for field, value in asdict(result).items():
        typer.echo(f"  {field}: {value:.3f}" if isinstance(value, float) else f"  {field}: {value}")


@app.command()
def blow(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help=_DATABASE_OPTION_HELP),
    settings: str | None = typer.Option(None, "--settings", "-s", help=_SETTINGS_OPTION_HELP),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Emergency: delete every board row WITHOUT replay (the ledger is kept)."""
    from wipledger.core.ledger.gateway import BoardGateway

    if not yes:
        typer.confirm("Emergency blow deletes every board row and does NOT replay. Continue?", abort=True)

    db, config = _open(ctx, database, settings)
    with db:
        dispatcher = _open_dispatcher(config)
        try:
            removed = BoardGateway(db, settings=config, dispatcher=dispatcher).emergency_blow()
        except BoardError as e:
            raise _fail(e) from None
        finally:
            if dispatcher is not None:
                dispatcher.close()

    typer.secho(f"Emergency blow completed: {removed} rows removed. Run 'wipledger rewind' to restore.", fg=typer.colors.YELLOW)


@app.command()
def verify(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help=_DATABASE_OPTION_HELP),
    settings: str | None = typer.Option(None, "--settings", "-s", help=_SETTINGS_OPTION_HELP),
) -> None:
    """Check that replaying the ledger reproduces the live board tables.

    Exits 1 when they differ.
    """
    from wipledger.core.ledger.gateway import BoardGateway

    db, config = _open(ctx, database, settings)
    with db:
        try:
            result = BoardGateway(db, settings=config).verify()
        except BoardError as e:
            raise _fail(e) from None

    typer.echo(f"live:     {result.live_digest}")
    typer.echo(f"replayed: {result.replayed_digest}")
    if not result.matches:
        typer.secho("MISMATCH: live tables differ from the ledger replay.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.secho("OK: live tables match the ledger.", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
