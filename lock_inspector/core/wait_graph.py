"""
Wait-graph builder.

`performance_schema.data_lock_waits` is authoritative when it returns rows.
Otherwise the edges are inferred from `data_locks` alone: a WAITING lock is
paired with every GRANTED lock of another transaction on the same
schema/table/index/key. The inference ignores mode compatibility (two shared
locks on one key do not conflict), so it can report edges that are not real
waits.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple

from lock_inspector.domain.models import (
    LOCK_STATUS_GRANTED,
    LOCK_STATUS_WAITING,
    LockRecord,
    WaitEdge,
    WaitSource,
    parse_rows,
)
from lock_inspector.utils.logging import get_logger

log = get_logger(__name__)

LockSite = Tuple[Optional[str], Optional[str], Optional[str], Optional[str]]


def _site(lock: LockRecord) -> LockSite:
    # Tuple equality treats None == None, which is the null-equal join we want.
    return (lock.object_schema, lock.object_name, lock.index_name, lock.lock_data)


def _status(lock: LockRecord) -> str:
    return (lock.lock_status or "").upper()


def _has_both_sides(edge: WaitEdge) -> bool:
    waiting = edge.waiting_transaction_id is not None or edge.waiting_thread_id is not None
    blocking = edge.blocking_transaction_id is not None or edge.blocking_thread_id is not None
    return waiting and blocking


def normalize_wait_edges(raw_rows: Iterable[Mapping[str, Any]]) -> List[WaitEdge]:
    """
    Map `data_lock_waits` rows onto WaitEdge.

    Unparseable rows are skipped, and so are rows where the waiting or the
    blocking side has neither a transaction id nor a thread id.
    """
    edges: List[WaitEdge] = []
    for edge in parse_rows(WaitEdge, raw_rows):
        if _has_both_sides(edge):
            edges.append(edge)
        else:
            log.warning(
                "Skipping wait row with an unidentified side",
                extra={"row": edge.model_dump(exclude_none=True)},
            )
    return edges


def infer_wait_edges(locks: Iterable[LockRecord]) -> List[WaitEdge]:
    """
    Derive wait edges by self-joining the lock batch.

    Edges are emitted in the order of the waiting locks, then the order of
    the granted locks they pair with.
    """
    lock_list = list(locks)
    granted_by_site: dict[LockSite, List[LockRecord]] = {}
    for lock in lock_list:
        if _status(lock) == LOCK_STATUS_GRANTED:
            granted_by_site.setdefault(_site(lock), []).append(lock)

    edges: List[WaitEdge] = []
    for waiting in lock_list:
        if _status(waiting) != LOCK_STATUS_WAITING:
            continue
        for blocking in granted_by_site.get(_site(waiting), []):
            if blocking.transaction_id == waiting.transaction_id:
                continue
            edges.append(
                WaitEdge(
                    waiting_transaction_id=waiting.transaction_id,
                    waiting_thread_id=waiting.thread_id,
                    waiting_event_id=waiting.event_id,
                    waiting_lock_key=waiting.lock_key,
                    blocking_transaction_id=blocking.transaction_id,
                    blocking_thread_id=blocking.thread_id,
                    blocking_event_id=blocking.event_id,
                    blocking_lock_key=blocking.lock_key,
                    source=WaitSource.INFERRED,
                )
            )
    return edges


def build_wait_edges(
    locks: Iterable[LockRecord],
    raw_wait_edges: Optional[Iterable[Mapping[str, Any]]] = None,
) -> Tuple[List[WaitEdge], WaitSource]:
    """
    Build the wait-for edges of one snapshot.

    Parameters
    ----------
    locks : iterable of LockRecord
        The `data_locks` batch.
    raw_wait_edges : iterable of mapping, optional
        Rows of `data_lock_waits`; None when that source was unavailable.

    Returns
    -------
    (edges, source)
        `source` says which path produced the edges, `WaitSource.NONE` when
        neither produced anything.
    """
    if raw_wait_edges is not None:
        direct = normalize_wait_edges(raw_wait_edges)
        if direct:
            return direct, WaitSource.DATA_LOCK_WAITS

    inferred = infer_wait_edges(locks)
    if inferred:
        log.debug("Inferred wait edges from lock batch", extra={"edges": len(inferred)})
        return inferred, WaitSource.INFERRED
    return [], WaitSource.NONE


__all__ = ["build_wait_edges", "infer_wait_edges", "normalize_wait_edges"]
