"""
Registry of operator sessions and their MySQL connections.

Each operator session (a CLI `watch` loop, a dashboard tab, ...) is keyed by
an opaque handle. The registry owns the connection behind each handle,
opens it lazily, and closes it when the handle is closed or has been idle
longer than the configured timeout.
"""

from __future__ import annotations

import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, List, Optional

import pymysql
from pymysql.connections import Connection

from lock_inspector.config import Settings, get_settings
from lock_inspector.infrastructure.db_factory import build_connect_kwargs, connect, describe_target
from lock_inspector.utils.logging import get_logger

log = get_logger(__name__)


class SessionNotFoundError(KeyError):
    """Raised for handles that were never created, were closed, or expired."""


@dataclass
class RegisteredSession:
    handle: str
    connect_kwargs: Dict[str, Any]
    created_at: float
    last_used_at: float
    connection: Optional[Connection] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def target(self) -> str:
        return describe_target(self.connect_kwargs)

    def idle_seconds(self, now: float) -> float:
        return now - self.last_used_at

    def close(self) -> None:
        """Close the underlying connection (best effort)."""
        if self.connection is None:
            return
        try:
            self.connection.close()
        except pymysql.err.Error as exc:
            log.debug("Connection already closed", extra={"handle": self.handle, "error": str(exc)})
        finally:
            self.connection = None


class SessionRegistry:
    """
    Thread-safe handle -> session map with idle-timeout eviction.

    Parameters
    ----------
    settings : Settings, optional
        Source of connection defaults and the idle timeout.
    connect_fn : callable
        Opens a connection from keyword arguments; `db_factory.connect` by default.
    clock : callable
        Monotonic clock in seconds, injectable for tests.
    idle_timeout_s : float, optional
        Overrides `settings.session_idle_timeout_s`.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        connect_fn: Callable[..., Connection] = connect,
        clock: Callable[[], float] = time.monotonic,
        idle_timeout_s: Optional[float] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._connect = connect_fn
        self._clock = clock
        self.idle_timeout_s = (
            idle_timeout_s if idle_timeout_s is not None else self._settings.session_idle_timeout_s
        )
        self._sessions: Dict[str, RegisteredSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._sessions

    def _expired(self, session: RegisteredSession, now: float) -> bool:
        return self.idle_timeout_s > 0 and session.idle_seconds(now) > self.idle_timeout_s

    def create(self, **overrides: Any) -> str:
        """
        Register a new session and return its handle.

        Keyword overrides (host, port, user, password, database) replace the
        settings defaults for this session only. No connection is opened yet.
        """
        self.evict_expired()
        now = self._clock()
        handle = uuid.uuid4().hex
        session = RegisteredSession(
            handle=handle,
            connect_kwargs=build_connect_kwargs(self._settings, **overrides),
            created_at=now,
            last_used_at=now,
        )
        with self._lock:
            self._sessions[handle] = session
        log.info("Session created", extra={"handle": handle, "target": session.target})
        return handle

    def get(self, handle: str) -> RegisteredSession:
        """Look up a live session and mark it as used."""
        now = self._clock()
        with self._lock:
            session = self._sessions.get(handle)
            expired = session is not None and self._expired(session, now)
            if expired:
                del self._sessions[handle]
            elif session is not None:
                session.last_used_at = now
        if session is None:
            raise SessionNotFoundError(handle)
        if expired:
            log.info("Session expired", extra={"handle": handle})
            session.close()
            raise SessionNotFoundError(handle)
        return session

    @contextmanager
    def connection(self, handle: str) -> Generator[Connection, None, None]:
        """
        Borrow the session's connection, opening it on first use.

        Usage of one session's connection is serialized.
        """
        session = self.get(handle)
        with session.lock:
            if session.connection is None or not session.connection.open:
                session.connection = self._connect(**session.connect_kwargs)
            try:
                yield session.connection
            except (pymysql.err.OperationalError, pymysql.err.InterfaceError):
                # Drop the broken connection; the next borrow reconnects.
                session.close()
                raise
            finally:
                session.last_used_at = self._clock()

    def close(self, handle: str) -> bool:
        """Close and forget a session. Returns False for unknown handles."""
        with self._lock:
            session = self._sessions.pop(handle, None)
        if session is None:
            return False
        session.close()
        log.info("Session closed", extra={"handle": handle})
        return True

    def evict_expired(self, now: Optional[float] = None) -> List[str]:
        """Close every session idle for longer than the timeout; return their handles."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [s for s in self._sessions.values() if self._expired(s, now)]
            for session in expired:
                del self._sessions[session.handle]
        for session in expired:
            session.close()
        if expired:
            log.info("Evicted idle sessions", extra={"evicted": len(expired)})
        return [s.handle for s in expired]

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()


__all__ = ["RegisteredSession", "SessionNotFoundError", "SessionRegistry"]
