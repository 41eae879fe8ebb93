"""
Statement locator: finds the SQL most likely responsible for a lock.

No single source has statement text for every lock-holding thread: statement
instrumentation may be disabled, the statement may already have finished, or
the transaction may have run it on another thread. Sources are tried in order:

1. `events_statements_current` for the thread
2. `events_statements_history` for the thread (most recent first)
3. statements of other threads that resolve to the same transaction
4. the session's PROCESSLIST.INFO text
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from lock_inspector.core.sessions import SessionResolver
from lock_inspector.domain.models import SessionRecord, StatementRecord, StatementSource

DEFAULT_HISTORY_LIMIT = 5


@dataclass(frozen=True)
class StatementMatch:
    statement: Optional[StatementRecord] = None
    recent: List[StatementRecord] = field(default_factory=list)
    source: Optional[StatementSource] = None


def _group_by_thread(statements: Iterable[StatementRecord]) -> Dict[int, List[StatementRecord]]:
    grouped: Dict[int, List[StatementRecord]] = {}
    for stmt in statements:
        if stmt.thread_id is not None:
            grouped.setdefault(stmt.thread_id, []).append(stmt)
    return grouped


class StatementLocator:
    """
    Locate statements for threads of one snapshot.

    Parameters
    ----------
    current : iterable of StatementRecord
        Rows of `events_statements_current`, in input order.
    history : iterable of StatementRecord
        Rows of `events_statements_history`, most recent first.
    resolver : SessionResolver
        Used to map other threads to their transaction for the cross-thread search.
    history_limit : int
        Maximum number of historical statements returned per lock.
    """

    def __init__(
        self,
        current: Iterable[StatementRecord] = (),
        history: Iterable[StatementRecord] = (),
        resolver: Optional[SessionResolver] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._current = list(current)
        self._history = list(history)
        self._current_by_thread = _group_by_thread(self._current)
        self._history_by_thread = _group_by_thread(self._history)
        self._resolver = resolver or SessionResolver()
        self._history_limit = history_limit

    def _same_transaction(
        self, thread_id: Optional[int], transaction_id: str
    ) -> List[StatementRecord]:
        matches: List[StatementRecord] = []
        # A finished statement is listed in both current and history.
        seen: Set[Tuple[int, Optional[int]]] = set()
        for stmt in self._current + self._history:
            if stmt.thread_id is None or stmt.thread_id == thread_id:
                continue
            key = (stmt.thread_id, stmt.event_id)
            if stmt.event_id is not None and key in seen:
                continue
            seen.add(key)
            if self._resolver.transaction_id_for(stmt.thread_id) == transaction_id:
                matches.append(stmt)
                if len(matches) >= self._history_limit:
                    break
        return matches

    def locate(
        self,
        thread_id: Optional[int],
        transaction_id: Optional[str] = None,
        session: Optional[SessionRecord] = None,
    ) -> StatementMatch:
        current = self._current_by_thread.get(thread_id, [])
        history = self._history_by_thread.get(thread_id, [])[: self._history_limit]

        if current:
            return StatementMatch(current[0], history, StatementSource.CURRENT)

        if history:
            return StatementMatch(history[0], history, StatementSource.HISTORY)

        if transaction_id is not None:
            related = self._same_transaction(thread_id, transaction_id)
            if related:
                return StatementMatch(related[0], related, StatementSource.TRANSACTION)

        if session is not None and session.info:
            synthetic = StatementRecord(
                thread_id=thread_id,
                sql_text=session.info,
                schema_name=session.db,
            )
            return StatementMatch(synthetic, [], StatementSource.SESSION)

        return StatementMatch()


__all__ = ["DEFAULT_HISTORY_LIMIT", "StatementLocator", "StatementMatch"]
