"""
Lock enricher: one EnrichedLock per input LockRecord, in input order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

from lock_inspector.core.classifier import classify_lock
from lock_inspector.core.sessions import SessionContext, SessionResolver
from lock_inspector.core.statements import DEFAULT_HISTORY_LIMIT, StatementLocator
from lock_inspector.domain.models import (
    EnrichedLock,
    LockRecord,
    SessionRecord,
    StatementRecord,
    ThreadMapping,
    TransactionRecord,
)


def lock_duration_seconds(context: SessionContext, captured_at: Optional[datetime] = None) -> float:
    """
    How long the lock has been held, as far as the snapshot can tell.

    Transaction age first (INNODB_TRX duration, or started_at against the
    snapshot time), then the session's PROCESSLIST.TIME, else 0.
    """
    trx = context.transaction
    if trx is not None:
        if trx.duration_seconds is not None:
            return float(trx.duration_seconds)
        if trx.started_at is not None and captured_at is not None:
            try:
                return max((captured_at - trx.started_at).total_seconds(), 0.0)
            except TypeError:
                # naive vs aware datetimes
                pass
    if context.session is not None and context.session.elapsed_seconds is not None:
        return float(context.session.elapsed_seconds)
    return 0.0


def enrich_lock(
    lock: LockRecord,
    resolver: SessionResolver,
    locator: StatementLocator,
    captured_at: Optional[datetime] = None,
) -> EnrichedLock:
    context = resolver.resolve(lock.thread_id)
    transaction_id = lock.transaction_id or context.transaction_id
    match = locator.locate(lock.thread_id, transaction_id, context.session)
    session = context.session
    trx = context.transaction

    return EnrichedLock(
        **lock.model_dump(),
        session_id=context.session_id,
        lock_duration_seconds=lock_duration_seconds(context, captured_at),
        transaction_started_at=trx.started_at if trx else None,
        transaction_state=trx.state if trx else None,
        statement=match.statement,
        statement_source=match.source,
        recent_statements=match.recent,
        session_user=session.user if session else None,
        session_host=session.host if session else None,
        session_db=session.db if session else None,
        session_command=session.command if session else None,
        session_state=session.state if session else None,
        classification=classify_lock(lock),
    )


def enrich_locks(
    locks: Iterable[LockRecord],
    threads: Iterable[ThreadMapping] = (),
    transactions: Iterable[TransactionRecord] = (),
    sessions: Iterable[SessionRecord] = (),
    statements_current: Iterable[StatementRecord] = (),
    statements_history: Iterable[StatementRecord] = (),
    captured_at: Optional[datetime] = None,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[EnrichedLock]:
    """
    Enrich every lock of a snapshot. Missing batches are valid and simply
    leave the corresponding fields empty.
    """
    resolver = SessionResolver(threads, transactions, sessions)
    locator = StatementLocator(
        statements_current, statements_history, resolver=resolver, history_limit=history_limit
    )
    return [enrich_lock(lock, resolver, locator, captured_at) for lock in locks]


__all__ = ["enrich_lock", "enrich_locks", "lock_duration_seconds"]
