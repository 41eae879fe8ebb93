"""
Session resolver: joins a lock-holding thread to its client session and
InnoDB transaction.

thread_id -> threads.PROCESSLIST_ID -> (INNODB_TRX row, PROCESSLIST row)

Every step may come up empty. A missing session id ends the chain; the
transaction and session lookups are independent of each other, so a session
without an open transaction (or the reverse) is kept as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from lock_inspector.domain.models import SessionRecord, ThreadMapping, TransactionRecord


@dataclass(frozen=True)
class SessionContext:
    """What is known about the session behind one thread."""

    thread_id: Optional[int]
    session_id: Optional[int] = None
    transaction: Optional[TransactionRecord] = None
    session: Optional[SessionRecord] = None

    @property
    def transaction_id(self) -> Optional[str]:
        return self.transaction.transaction_id if self.transaction else None


class SessionResolver:
    """
    Index the thread, transaction and session batches of one snapshot.

    When a key appears more than once the first record in input order wins.
    """

    def __init__(
        self,
        threads: Iterable[ThreadMapping] = (),
        transactions: Iterable[TransactionRecord] = (),
        sessions: Iterable[SessionRecord] = (),
    ) -> None:
        self._session_by_thread: Dict[int, Optional[int]] = {}
        self._transaction_by_session: Dict[int, TransactionRecord] = {}
        self._session_by_id: Dict[int, SessionRecord] = {}

        for mapping in threads:
            if mapping.thread_id is not None:
                self._session_by_thread.setdefault(mapping.thread_id, mapping.session_id)
        for trx in transactions:
            if trx.session_id is not None:
                self._transaction_by_session.setdefault(trx.session_id, trx)
        for session in sessions:
            if session.session_id is not None:
                self._session_by_id.setdefault(session.session_id, session)

    def resolve(self, thread_id: Optional[int]) -> SessionContext:
        if thread_id is None:
            return SessionContext(thread_id=None)
        session_id = self._session_by_thread.get(thread_id)
        if session_id is None:
            return SessionContext(thread_id=thread_id)
        return SessionContext(
            thread_id=thread_id,
            session_id=session_id,
            transaction=self._transaction_by_session.get(session_id),
            session=self._session_by_id.get(session_id),
        )

    def transaction_id_for(self, thread_id: Optional[int]) -> Optional[str]:
        return self.resolve(thread_id).transaction_id


def resolve_session(
    thread_id: Optional[int],
    threads: Iterable[ThreadMapping],
    transactions: Iterable[TransactionRecord],
    sessions: Iterable[SessionRecord],
) -> SessionContext:
    """One-off resolution; build a SessionResolver when resolving many threads."""
    return SessionResolver(threads, transactions, sessions).resolve(thread_id)


__all__ = ["SessionContext", "SessionResolver", "resolve_session"]
