"""
Snapshot service: collect, correlate, and optionally persist lock snapshots.

Usage (example from CLI):
    from lock_inspector.infrastructure.session_registry import SessionRegistry
    from lock_inspector.service import take_snapshot

    registry = SessionRegistry()
    handle = registry.create()
    snapshot = take_snapshot(registry, handle)

Persisted snapshots are saved to `results/` by default:
- `results/latest.json` (last snapshot)
- `results/snapshot-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
from datetime import timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pymysql.connections import Connection

from lock_inspector.config import Settings, get_settings
from lock_inspector.core.snapshot import build_snapshot
from lock_inspector.domain.models import LockSnapshot
from lock_inspector.infrastructure.collector import collect_batches
from lock_inspector.infrastructure.session_registry import SessionRegistry
from lock_inspector.utils.logging import get_logger

log = get_logger(__name__)


def snapshot_to_dict(snapshot: LockSnapshot) -> Dict[str, Any]:
    return snapshot.model_dump(mode="json")


def snapshot_to_json(snapshot: LockSnapshot, indent: Optional[int] = 2) -> str:
    """Deterministic JSON rendering: same snapshot, same bytes."""
    return json.dumps(snapshot_to_dict(snapshot), indent=indent, sort_keys=True, ensure_ascii=False)


def snapshot_from_connection(conn: Connection, settings: Optional[Settings] = None) -> LockSnapshot:
    """Collect batches over an open connection and correlate them."""
    settings = settings or get_settings()
    collected = collect_batches(conn, settings)
    snapshot = build_snapshot(
        collected.batches,
        collected.captured_at,
        history_limit=settings.statement_history_limit,
    )
    log.info(
        "[SNAPSHOT] correlated",
        extra={
            "locks": len(snapshot.locks),
            "wait_edges": len(snapshot.wait_edges),
            "wait_source": snapshot.wait_source.value,
            "root_blockers": snapshot.blocking.root_blockers,
        },
    )
    return snapshot


def take_snapshot(
    registry: SessionRegistry,
    handle: str,
    settings: Optional[Settings] = None,
) -> LockSnapshot:
    """
    Take one snapshot using the connection of a registered session.

    Raises
    ------
    SessionNotFoundError
        If the handle is unknown or expired.
    pymysql.err.OperationalError
        If the connection cannot be opened or is lost mid-collection.
    """
    with registry.connection(handle) as conn:
        return snapshot_from_connection(conn, settings)


def persist_snapshot(snapshot: LockSnapshot, results_dir: Path | str = "results") -> Path:
    """Write the snapshot as `latest.json` plus a timestamped archive; return the archive path."""
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = snapshot.snapshot_timestamp.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    archive_path = results_dir / f"snapshot-{timestamp}.json"

    payload = snapshot_to_json(snapshot)
    latest_path.write_text(payload, encoding="utf-8")
    archive_path.write_text(payload, encoding="utf-8")

    log.info("Snapshot persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})
    return archive_path


__all__ = [
    "persist_snapshot",
    "snapshot_from_connection",
    "snapshot_to_dict",
    "snapshot_to_json",
    "take_snapshot",
]
