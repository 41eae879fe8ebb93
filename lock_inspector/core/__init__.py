"""
Lock-state correlation engine.

Pure, stateless stages that turn raw introspection batches into a unified
lock snapshot. No I/O happens in this package.
"""

from lock_inspector.core.blocking import analyze_blocking, build_wait_for_graph
from lock_inspector.core.classifier import classify_lock, mode_label
from lock_inspector.core.enricher import enrich_lock, enrich_locks, lock_duration_seconds
from lock_inspector.core.sessions import SessionContext, SessionResolver, resolve_session
from lock_inspector.core.snapshot import build_snapshot
from lock_inspector.core.statements import StatementLocator, StatementMatch
from lock_inspector.core.wait_graph import build_wait_edges, infer_wait_edges, normalize_wait_edges

__all__ = [
    # Classification
    "classify_lock",
    "mode_label",
    # Resolution
    "SessionContext",
    "SessionResolver",
    "resolve_session",
    "StatementLocator",
    "StatementMatch",
    # Enrichment
    "enrich_lock",
    "enrich_locks",
    "lock_duration_seconds",
    # Wait graph
    "build_wait_edges",
    "infer_wait_edges",
    "normalize_wait_edges",
    "analyze_blocking",
    "build_wait_for_graph",
    # Assembly
    "build_snapshot",
]
