from __future__ import annotations

import sys
import time
from typing import Optional

import pymysql
import typer
from rich.console import Console

from lock_inspector.config import get_settings
from lock_inspector.infrastructure.db_factory import build_connect_kwargs, describe_target
from lock_inspector.infrastructure.session_registry import SessionNotFoundError, SessionRegistry
from lock_inspector.reporter import print_snapshot
from lock_inspector.service import persist_snapshot, snapshot_to_json, take_snapshot
from lock_inspector.utils.logging import configure_logging

app = typer.Typer(help="InnoDB Lock Inspector CLI.")


def _open_registry(
    host: Optional[str], port: Optional[int], user: Optional[str]
) -> tuple[SessionRegistry, str]:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    registry = SessionRegistry(settings)
    handle = registry.create(host=host, port=port, user=user)
    return registry, handle


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={describe_target(build_connect_kwargs(settings))} | "
        f"statement_timeout_ms={settings.db_statement_timeout_ms} "
        f"history_limit={settings.statement_history_limit} "
        f"idle_timeout_s={settings.session_idle_timeout_s}"
    )


@app.command()
def snapshot(
    as_json: bool = typer.Option(
        False, "--json", help="Print the snapshot as JSON instead of tables."
    ),
    persist: bool = typer.Option(
        False, "--persist", "-p", help="Also write the snapshot under the results dir."
    ),
    results_dir: Optional[str] = typer.Option(None, "--results-dir", help="Override RESULTS_DIR."),
    host: Optional[str] = typer.Option(None, "--host", help="Override DB_HOST."),
    port: Optional[int] = typer.Option(None, "--port", help="Override DB_PORT."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Override DB_USER."),
) -> None:
    """
    Take one lock snapshot and print it.
    """
    settings = get_settings()
    registry, handle = _open_registry(host, port, user)
    try:
        snap = take_snapshot(registry, handle, settings)
    except pymysql.MySQLError as exc:
        typer.echo(f"Could not read lock state: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        registry.close_all()

    if as_json:
        typer.echo(snapshot_to_json(snap))
    else:
        print_snapshot(snap)
    if persist:
        path = persist_snapshot(snap, results_dir or settings.results_dir)
        typer.echo(f"Saved {path}", err=True)


@app.command()
def watch(
    interval: Optional[float] = typer.Option(
        None, "--interval", "-i", help="Seconds between snapshots (default from settings)."
    ),
    count: int = typer.Option(
        0, "--count", "-n", help="Stop after N snapshots (0 = until interrupted)."
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Override DB_HOST."),
    port: Optional[int] = typer.Option(None, "--port", help="Override DB_PORT."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Override DB_USER."),
) -> None:
    """
    Poll the lock state repeatedly over one registered session.
    """
    settings = get_settings()
    delay = interval if interval is not None else settings.watch_interval_s
    registry, handle = _open_registry(host, port, user)
    console = Console()
    taken = 0
    try:
        while count <= 0 or taken < count:
            try:
                snap = take_snapshot(registry, handle, settings)
            except SessionNotFoundError:
                # idle longer than SESSION_IDLE_TIMEOUT_S between polls
                handle = registry.create(host=host, port=port, user=user)
                continue
            except pymysql.MySQLError as exc:
                typer.echo(f"Could not read lock state: {exc}", err=True)
                raise typer.Exit(code=1)
            console.clear()
            print_snapshot(snap, console)
            taken += 1
            if count <= 0 or taken < count:
                time.sleep(delay)
    finally:
        registry.close_all()


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
