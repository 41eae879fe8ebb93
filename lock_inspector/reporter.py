from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from lock_inspector.domain.models import LOCK_STATUS_WAITING, EnrichedLock, LockSnapshot

IDLE_COMMAND = "Sleep"
SQL_PREVIEW_CHARS = 80


def _preview(text: Optional[str], limit: int = SQL_PREVIEW_CHARS) -> str:
    if not text:
        return "-"
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 1] + "…"


def _session_label(lock: EnrichedLock) -> str:
    if lock.session_id is None:
        return f"thread {lock.thread_id}" if lock.thread_id is not None else "-"
    who = f"{lock.session_user}@{lock.session_host}" if lock.session_user else ""
    return f"#{lock.session_id} {who}".strip()


def build_locks_table(snapshot: LockSnapshot) -> Table:
    """
    One row per lock, waiting locks first.

    Within each status group the collector's order (transaction, thread) is kept.
    """
    table = Table(
        title=f"InnoDB locks @ {snapshot.snapshot_timestamp.isoformat()}",
        box=box.ROUNDED,
        caption=f"{len(snapshot.locks)} lock(s)",
    )
    table.add_column("Trx", style="cyan", no_wrap=True)
    table.add_column("Session", style="blue")
    table.add_column("Kind", no_wrap=True)
    table.add_column("Mode", style="magenta")
    table.add_column("Status", no_wrap=True)
    table.add_column("Target")
    table.add_column("Held (s)", justify="right", style="yellow")
    table.add_column("SQL", style="dim")

    ordered = sorted(
        snapshot.locks, key=lambda lock: (lock.lock_status or "").upper() != LOCK_STATUS_WAITING
    )
    for lock in ordered:
        cls = lock.classification
        status = lock.lock_status or "-"
        if status.upper() == LOCK_STATUS_WAITING:
            status = f"[bold red]{status}[/bold red]"
        sql = lock.statement.sql_text if lock.statement else None
        table.add_row(
            lock.transaction_id or "-",
            _session_label(lock),
            f"[{cls.display_color}]{cls.display_icon} {cls.kind.value}[/{cls.display_color}]",
            f"{cls.mode_label} ({lock.lock_mode or '-'})",
            status,
            cls.description,
            f"{lock.lock_duration_seconds:.0f}",
            _preview(sql),
        )
    return table


def build_waits_table(snapshot: LockSnapshot) -> Table:
    table = Table(
        title="Lock waits",
        box=box.ROUNDED,
        caption=f"source: {snapshot.wait_source.value}",
    )
    table.add_column("Waiting trx", style="red", no_wrap=True)
    table.add_column("Waiting thread", justify="right")
    table.add_column("Blocking trx", style="green", no_wrap=True)
    table.add_column("Blocking thread", justify="right")
    table.add_column("Lock")

    for edge in snapshot.wait_edges:
        table.add_row(
            edge.waiting_transaction_id or "-",
            str(edge.waiting_thread_id) if edge.waiting_thread_id is not None else "-",
            edge.blocking_transaction_id or "-",
            str(edge.blocking_thread_id) if edge.blocking_thread_id is not None else "-",
            edge.blocking_lock_key or edge.waiting_lock_key or "-",
        )
    return table


def build_sessions_table(snapshot: LockSnapshot) -> Table:
    """Active (non-Sleep) sessions, like SHOW PROCESSLIST without the idle noise."""
    table = Table(title="Active sessions", box=box.ROUNDED)
    table.add_column("Id", justify="right", style="cyan")
    table.add_column("User")
    table.add_column("Host")
    table.add_column("DB")
    table.add_column("Command")
    table.add_column("Time", justify="right", style="yellow")
    table.add_column("State")
    table.add_column("Info", style="dim")

    for session in snapshot.sessions:
        if session.command == IDLE_COMMAND:
            continue
        table.add_row(
            str(session.session_id),
            session.user or "-",
            session.host or "-",
            session.db or "-",
            session.command or "-",
            f"{session.elapsed_seconds:.0f}" if session.elapsed_seconds is not None else "-",
            session.state or "-",
            _preview(session.info),
        )
    return table


def print_snapshot(snapshot: LockSnapshot, console: Optional[Console] = None) -> None:
    """
    Render a snapshot as rich tables: blocking summary, waits, locks, sessions.
    """
    console = console or Console()

    if not snapshot.locks:
        console.print("[green]No InnoDB locks held.[/green]")
    else:
        blocking = snapshot.blocking
        if blocking.blocking:
            console.print(
                f"[bold red]Blocking detected[/bold red]: "
                f"root blocker(s) {', '.join(blocking.root_blockers) or '-'}, "
                f"{len(blocking.blocked_transactions)} waiting transaction(s), "
                f"max chain depth {blocking.max_chain_depth}"
            )
            for cycle in blocking.cycles:
                console.print(f"[bold yellow]Wait cycle[/bold yellow]: {' -> '.join(cycle + cycle[:1])}")
        if snapshot.wait_edges:
            console.print(build_waits_table(snapshot))
        console.print(build_locks_table(snapshot))

    if any(session.command != IDLE_COMMAND for session in snapshot.sessions):
        console.print(build_sessions_table(snapshot))


__all__ = ["build_locks_table", "build_sessions_table", "build_waits_table", "print_snapshot"]
