"""
Snapshot assembly: the single entry point of the correlation engine.

`build_snapshot` is a pure function of its inputs. The snapshot time is
passed in by the caller (the collector records when it read the views), so
the same batches always produce the same result.
"""

from __future__ import annotations

from datetime import datetime

from lock_inspector.core.blocking import analyze_blocking
from lock_inspector.core.enricher import enrich_locks
from lock_inspector.core.statements import DEFAULT_HISTORY_LIMIT
from lock_inspector.core.wait_graph import build_wait_edges
from lock_inspector.domain.models import LockSnapshot, SnapshotBatches


def build_snapshot(
    batches: SnapshotBatches,
    captured_at: datetime,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> LockSnapshot:
    """
    Correlate one snapshot's batches into a LockSnapshot.

    Parameters
    ----------
    batches : SnapshotBatches
        Parsed input batches; any of them may be empty.
    captured_at : datetime
        When the batches were read.
    history_limit : int
        Maximum number of historical statements attached to each lock.
    """
    locks = enrich_locks(
        batches.locks,
        threads=batches.threads,
        transactions=batches.transactions,
        sessions=batches.sessions,
        statements_current=batches.statements_current,
        statements_history=batches.statements_history,
        captured_at=captured_at,
        history_limit=history_limit,
    )
    edges, wait_source = build_wait_edges(batches.locks, batches.raw_wait_edges)

    return LockSnapshot(
        locks=locks,
        wait_edges=edges,
        sessions=batches.sessions,
        transactions=batches.transactions,
        snapshot_timestamp=captured_at,
        wait_source=wait_source,
        blocking=analyze_blocking(edges),
    )


__all__ = ["build_snapshot"]
