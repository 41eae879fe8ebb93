"""
Infrastructure package for the InnoDB Lock Inspector.

Centralizes MySQL connectivity (connection factory, session registry) and
the collection of introspection rows. Keep this layer focused on I/O and
resource management, decoupled from the correlation engine.
"""

from lock_inspector.infrastructure.collector import CollectedBatches, collect_batches
from lock_inspector.infrastructure.db_factory import (
    apply_statement_timeout,
    build_connect_kwargs,
    connect,
)
from lock_inspector.infrastructure.session_registry import (
    RegisteredSession,
    SessionNotFoundError,
    SessionRegistry,
)

__all__ = [
    "CollectedBatches",
    "collect_batches",
    "apply_statement_timeout",
    "build_connect_kwargs",
    "connect",
    "RegisteredSession",
    "SessionNotFoundError",
    "SessionRegistry",
]
