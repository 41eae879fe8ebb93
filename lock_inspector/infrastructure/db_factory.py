"""
Database connection factory utilities for the InnoDB Lock Inspector.

Builds PyMySQL connections from settings, with retry logic for transient
connection failures using tenacity. Introspection queries read
`performance_schema` and `information_schema`, so connections use a dict
cursor and autocommit: each view is read as of "now", never inside a
long-running read view of our own.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import pymysql
from pymysql.connections import Connection
from pymysql.cursors import Cursor, DictCursor
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from lock_inspector.config import Settings, get_settings
from lock_inspector.utils.logging import get_logger

log = get_logger(__name__)


def build_connect_kwargs(settings: Optional[Settings] = None, **overrides: Any) -> Dict[str, Any]:
    """
    Compose `pymysql.connect` keyword arguments from settings.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to the cached application settings.
    **overrides
        Per-call overrides (e.g. host/user supplied when a registry session is created).
    """
    settings = settings or get_settings()
    kwargs: Dict[str, Any] = {
        "host": settings.db_host,
        "port": settings.db_port,
        "user": settings.db_user,
        "password": settings.db_password,
        "database": settings.db_name,
        "connect_timeout": settings.db_connect_timeout_s,
        "cursorclass": DictCursor,
        "autocommit": True,
        "charset": "utf8mb4",
    }
    kwargs.update({key: value for key, value in overrides.items() if value is not None})
    return kwargs


def describe_target(connect_kwargs: Dict[str, Any]) -> str:
    """Password-free `user@host:port/db` string for logs and CLI output."""
    return (
        f"{connect_kwargs.get('user')}@{connect_kwargs.get('host')}:"
        f"{connect_kwargs.get('port')}/{connect_kwargs.get('database')}"
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((pymysql.err.OperationalError, pymysql.err.InterfaceError)),
    reraise=True,
)
def connect(**connect_kwargs: Any) -> Connection:
    """
    Open a MySQL connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.

    Returns
    -------
    Connection
        A new PyMySQL connection using a dict cursor.

    Raises
    ------
    pymysql.err.OperationalError
        If connection fails after all retry attempts.
    """
    kwargs = connect_kwargs or build_connect_kwargs()
    log.debug("Connecting to MySQL", extra={"target": describe_target(kwargs)})
    return pymysql.connect(**kwargs)


def apply_statement_timeout(cur: Cursor, timeout_ms: int) -> None:
    """
    Bound every SELECT on this session with `max_execution_time`.

    A timeout of 0 disables the limit, matching the server's own semantics.
    """
    cur.execute("SET SESSION max_execution_time = %s", (int(timeout_ms),))


__all__ = [
    "apply_statement_timeout",
    "build_connect_kwargs",
    "connect",
    "describe_target",
]
