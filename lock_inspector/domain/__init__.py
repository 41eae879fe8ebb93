"""
Domain package for the InnoDB Lock Inspector.

Exports the raw introspection models and the derived snapshot models.
Keep this package focused on data definitions and validation concerns.
"""

from lock_inspector.domain.models import (
    BlockingSummary,
    EnrichedLock,
    LockClassification,
    LockKind,
    LockRecord,
    LockSnapshot,
    SessionRecord,
    SnapshotBatches,
    StatementRecord,
    StatementSource,
    ThreadMapping,
    TransactionRecord,
    WaitEdge,
    WaitSource,
    parse_rows,
)

__all__ = [
    "BlockingSummary",
    "EnrichedLock",
    "LockClassification",
    "LockKind",
    "LockRecord",
    "LockSnapshot",
    "SessionRecord",
    "SnapshotBatches",
    "StatementRecord",
    "StatementSource",
    "ThreadMapping",
    "TransactionRecord",
    "WaitEdge",
    "WaitSource",
    "parse_rows",
]
