"""
Snapshot collector: reads the MySQL introspection views for one snapshot.

Each view is queried independently. A view that cannot be read (instrumentation
disabled, missing privilege, older server, timeout) is logged and contributes
an empty batch; collection itself only fails when the connection does.
The views are not read in one transaction, so batches may disagree slightly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pymysql
from pymysql.connections import Connection
from pymysql.cursors import DictCursor

from lock_inspector.config import Settings, get_settings
from lock_inspector.domain.models import SnapshotBatches
from lock_inspector.infrastructure.db_factory import apply_statement_timeout
from lock_inspector.utils.logging import get_logger
from lock_inspector.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

LOCKS_SQL = """
    SELECT
        ENGINE,
        ENGINE_LOCK_ID,
        ENGINE_TRANSACTION_ID,
        THREAD_ID,
        EVENT_ID,
        OBJECT_SCHEMA,
        OBJECT_NAME,
        INDEX_NAME,
        LOCK_TYPE,
        LOCK_MODE,
        LOCK_STATUS,
        LOCK_DATA
    FROM performance_schema.data_locks
    ORDER BY ENGINE_TRANSACTION_ID, THREAD_ID
"""

LOCK_WAITS_SQL = """
    SELECT
        REQUESTING_ENGINE_TRANSACTION_ID,
        REQUESTING_THREAD_ID,
        REQUESTING_EVENT_ID,
        REQUESTING_ENGINE_LOCK_ID,
        BLOCKING_ENGINE_TRANSACTION_ID,
        BLOCKING_THREAD_ID,
        BLOCKING_EVENT_ID,
        BLOCKING_ENGINE_LOCK_ID
    FROM performance_schema.data_lock_waits
"""

THREADS_SQL = """
    SELECT THREAD_ID, PROCESSLIST_ID, NAME
    FROM performance_schema.threads
    WHERE PROCESSLIST_ID IS NOT NULL
"""

TRANSACTIONS_SQL = """
    SELECT
        trx_id AS TRX_ID,
        trx_mysql_thread_id AS TRX_MYSQL_THREAD_ID,
        trx_started AS TRX_STARTED,
        TIMESTAMPDIFF(SECOND, trx_started, NOW()) AS TRX_DURATION_SECONDS,
        trx_state AS TRX_STATE,
        trx_wait_started AS TRX_WAIT_STARTED
    FROM information_schema.INNODB_TRX
"""

# Sleeping sessions are kept: an idle session with an open transaction is
# the classic lock holder.
PROCESSLIST_SQL = """
    SELECT ID, USER, HOST, DB, COMMAND, TIME, STATE, INFO
    FROM information_schema.PROCESSLIST
"""

STATEMENTS_CURRENT_SQL = """
    SELECT THREAD_ID, EVENT_ID, TIMER_START, TIMER_END, SQL_TEXT, DIGEST_TEXT, CURRENT_SCHEMA
    FROM performance_schema.events_statements_current
    WHERE SQL_TEXT IS NOT NULL
    ORDER BY THREAD_ID, EVENT_ID DESC
"""

STATEMENTS_HISTORY_SQL = """
    SELECT THREAD_ID, EVENT_ID, TIMER_START, TIMER_END, SQL_TEXT, DIGEST_TEXT, CURRENT_SCHEMA
    FROM performance_schema.events_statements_history
    WHERE SQL_TEXT IS NOT NULL
    ORDER BY THREAD_ID, EVENT_ID DESC
"""

QUERIES: Dict[str, str] = {
    "locks": LOCKS_SQL,
    "lock_waits": LOCK_WAITS_SQL,
    "threads": THREADS_SQL,
    "transactions": TRANSACTIONS_SQL,
    "sessions": PROCESSLIST_SQL,
    "statements_current": STATEMENTS_CURRENT_SQL,
    "statements_history": STATEMENTS_HISTORY_SQL,
}


@dataclass
class CollectedBatches:
    """Batches of one collection plus when and how they were read."""

    batches: SnapshotBatches
    captured_at: datetime
    stats: Optional[ProfileStats] = None
    unavailable: List[str] = field(default_factory=list)


# CR_SERVER_GONE_ERROR, CR_SERVER_LOST, CR_SERVER_LOST_EXTENDED
_CONNECTION_LOST_CODES = frozenset({2006, 2013, 2055})


def _is_connection_error(exc: pymysql.MySQLError) -> bool:
    if isinstance(exc, pymysql.err.InterfaceError):
        return True
    return (
        isinstance(exc, pymysql.err.OperationalError)
        and bool(exc.args)
        and exc.args[0] in _CONNECTION_LOST_CODES
    )


def fetch_rows(conn: Connection, name: str, sql: str) -> Optional[List[Dict[str, Any]]]:
    """
    Run one introspection query.

    Returns None when the view could not be read. Lost connections are
    re-raised since no later query can succeed either.
    """
    try:
        with conn.cursor(DictCursor) as cur:
            cur.execute(sql)
            return list(cur.fetchall())
    except pymysql.MySQLError as exc:
        if _is_connection_error(exc):
            raise
        log.warning(
            f"[COLLECT] {name} unavailable",
            extra={"source": name, "error": str(exc)},
        )
        return None


def collect_batches(conn: Connection, settings: Optional[Settings] = None) -> CollectedBatches:
    """
    Read every introspection view once and parse the rows into batches.

    Parameters
    ----------
    conn : Connection
        An open PyMySQL connection.
    settings : Settings, optional
        Source of the statement timeout.
    """
    settings = settings or get_settings()
    captured_at = datetime.now(timezone.utc)
    rows: Dict[str, Optional[List[Dict[str, Any]]]] = {}

    with profile_block("collect") as stats:
        try:
            with conn.cursor() as cur:
                apply_statement_timeout(cur, settings.db_statement_timeout_ms)
        except pymysql.MySQLError as exc:
            if _is_connection_error(exc):
                raise
            log.warning("Could not apply statement timeout", extra={"error": str(exc)})

        for name, sql in QUERIES.items():
            rows[name] = fetch_rows(conn, name, sql)

    unavailable = [name for name, batch in rows.items() if batch is None]
    batches = SnapshotBatches.from_rows(
        locks=rows["locks"] or [],
        threads=rows["threads"] or [],
        transactions=rows["transactions"] or [],
        sessions=rows["sessions"] or [],
        statements_current=rows["statements_current"] or [],
        statements_history=rows["statements_history"] or [],
        raw_wait_edges=rows["lock_waits"],
    )
    stats.extra.update(
        {
            "locks": len(batches.locks),
            "transactions": len(batches.transactions),
            "unavailable": unavailable,
        }
    )
    log.info("[COLLECT] snapshot read", extra=stats.as_log_extra())
    return CollectedBatches(
        batches=batches, captured_at=captured_at, stats=stats, unavailable=unavailable
    )


__all__ = ["CollectedBatches", "QUERIES", "collect_batches", "fetch_rows"]
