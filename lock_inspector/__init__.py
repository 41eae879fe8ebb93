"""
InnoDB Lock Inspector - who holds which lock, who waits on whom, and why.

This package reads MySQL 8 lock introspection views and correlates them into
an operator-facing snapshot:

- Lock classification (table, row, gap, insert-intention)
- Thread -> session -> transaction resolution
- Statement lookup with layered fallbacks
- Wait-for graph from `data_lock_waits` or inferred from `data_locks`
- Blocking-chain summary (root blockers, wait cycles)

The correlation engine (`lock_inspector.core`) is pure and stateless; all
database I/O lives in `lock_inspector.infrastructure`.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from lock_inspector.config import Settings, get_settings
from lock_inspector.core.snapshot import build_snapshot
from lock_inspector.domain.models import LockSnapshot, SnapshotBatches
from lock_inspector.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Correlation
    "build_snapshot",
    "LockSnapshot",
    "SnapshotBatches",
    # Logging
    "configure_logging",
    "get_logger",
]
