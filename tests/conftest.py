"""
Pytest configuration for the InnoDB Lock Inspector.

Provides fixtures for:
- Settings with test-specific overrides
- Record factories for the introspection models
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Callable, Generator

import pymysql
import pytest
from pymysql.connections import Connection
from pymysql.cursors import DictCursor

from lock_inspector.config import Settings
from lock_inspector.domain.models import (
    LockRecord,
    SessionRecord,
    StatementRecord,
    ThreadMapping,
    TransactionRecord,
)

FIXED_CAPTURED_AT = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "3306")),
        db_user=os.getenv("DB_USER", "root"),
        db_password=os.getenv("DB_PASSWORD", ""),
        db_name=os.getenv("DB_NAME", "performance_schema"),
        log_level="DEBUG",
    )


@pytest.fixture
def captured_at() -> datetime:
    return FIXED_CAPTURED_AT


@pytest.fixture
def make_lock() -> Callable[..., LockRecord]:
    """Factory for a granted InnoDB row lock on db1.orders; override any field."""

    def _make(**overrides: Any) -> LockRecord:
        fields: dict[str, Any] = {
            "engine": "INNODB",
            "transaction_id": "T1",
            "thread_id": 101,
            "event_id": 10,
            "object_schema": "db1",
            "object_name": "orders",
            "index_name": "PRIMARY",
            "lock_type": "RECORD",
            "lock_mode": "X,REC_NOT_GAP",
            "lock_status": "GRANTED",
            "lock_data": "100",
        }
        fields.update(overrides)
        return LockRecord(**fields)

    return _make


@pytest.fixture
def thread_mappings() -> list[ThreadMapping]:
    return [
        ThreadMapping(thread_id=101, session_id=11, name="thread/sql/one_connection"),
        ThreadMapping(thread_id=102, session_id=12, name="thread/sql/one_connection"),
        ThreadMapping(thread_id=103, session_id=None, name="thread/innodb/purge_thread"),
    ]


@pytest.fixture
def transactions() -> list[TransactionRecord]:
    return [
        TransactionRecord(
            transaction_id="T1",
            session_id=11,
            started_at=datetime(2026, 10, 19, 11, 59, 0, tzinfo=timezone.utc),
            duration_seconds=60,
            state="RUNNING",
        ),
        TransactionRecord(
            transaction_id="T2",
            session_id=12,
            started_at=datetime(2026, 10, 19, 11, 59, 50, tzinfo=timezone.utc),
            duration_seconds=10,
            state="LOCK WAIT",
            wait_started_at=datetime(2026, 10, 19, 11, 59, 55, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture
def sessions() -> list[SessionRecord]:
    return [
        SessionRecord(
            session_id=11,
            user="app",
            host="10.0.0.5:51234",
            db="db1",
            command="Sleep",
            elapsed_seconds=45,
            state="",
            info=None,
        ),
        SessionRecord(
            session_id=12,
            user="report",
            host="10.0.0.6:40110",
            db="db1",
            command="Query",
            elapsed_seconds=5,
            state="updating",
            info="UPDATE orders SET status = 'x' WHERE id = 100",
        ),
    ]


@pytest.fixture
def make_statement() -> Callable[..., StatementRecord]:
    def _make(thread_id: int, event_id: int, sql_text: str, **overrides: Any) -> StatementRecord:
        return StatementRecord(
            thread_id=thread_id,
            event_id=event_id,
            sql_text=sql_text,
            schema_name=overrides.pop("schema_name", "db1"),
            **overrides,
        )

    return _make


@pytest.fixture(scope="session")
def db_connection_available(test_settings: Settings) -> bool:
    """
    Check if MySQL is reachable.

    Used to conditionally skip integration tests when the server is not available.
    """
    try:
        conn = pymysql.connect(
            host=test_settings.db_host,
            port=test_settings.db_port,
            user=test_settings.db_user,
            password=test_settings.db_password,
            database=test_settings.db_name,
            connect_timeout=5,
        )
    except pymysql.MySQLError:
        return False
    conn.close()
    return True


@pytest.fixture(scope="session")
def db_connection(
    test_settings: Settings, db_connection_available: bool
) -> Generator[Connection, None, None]:
    """
    Provide a session-scoped connection for integration tests.

    Skips tests if the server is not available.
    """
    if not db_connection_available:
        pytest.skip("MySQL not available for integration tests")

    conn = pymysql.connect(
        host=test_settings.db_host,
        port=test_settings.db_port,
        user=test_settings.db_user,
        password=test_settings.db_password,
        database=test_settings.db_name,
        cursorclass=DictCursor,
        autocommit=True,
    )
    try:
        yield conn
    finally:
        conn.close()
