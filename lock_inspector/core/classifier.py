"""
Lock classifier: maps one `data_locks` row to an operator-facing description.

Mode checks work on exact comma-separated tokens, never substrings, so
`REC_NOT_GAP` is not mistaken for `GAP` and `IX` is not mistaken for `X`.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from lock_inspector.domain.models import (
    LOCK_TYPE_RECORD,
    LOCK_TYPE_TABLE,
    LockClassification,
    LockKind,
    LockRecord,
    split_lock_mode,
)

PRIMARY_INDEX = "PRIMARY"
SUPREMUM_MARKER = "supremum pseudo-record"
INFIMUM_MARKER = "infimum pseudo-record"

GAP_TOKEN = "GAP"
INSERT_INTENTION_TOKEN = "INSERT_INTENTION"

# Checked in order; the first token present wins.
MODE_LABELS: Tuple[Tuple[str, str], ...] = (
    ("X", "exclusive"),
    ("S", "shared"),
    ("IS", "intent-shared"),
    ("IX", "intent-exclusive"),
    ("AUTO_INC", "auto-increment"),
)

# kind -> (icon, rich color)
DISPLAY_HINTS: Dict[LockKind, Tuple[str, str]] = {
    LockKind.TABLE_LOCK: ("🗄", "red"),
    LockKind.GAP_LOCK: ("↔", "yellow"),
    LockKind.INSERT_INTENTION_LOCK: ("➕", "cyan"),
    LockKind.RECORD_LOCK: ("🔑", "green"),
    LockKind.UNKNOWN: ("?", "white"),
}


def mode_label(lock_mode: Optional[str]) -> str:
    """Human label for a LOCK_MODE value such as `IX` or `X,REC_NOT_GAP`."""
    tokens = split_lock_mode(lock_mode)
    for token, label in MODE_LABELS:
        if token in tokens:
            return label
    return lock_mode or "unknown"


def _qualified_name(lock: LockRecord) -> str:
    return f"{lock.object_schema}.{lock.object_name}"


def _record_description(lock: LockRecord) -> str:
    description = f"table {_qualified_name(lock)}"
    if lock.index_name and lock.index_name != PRIMARY_INDEX:
        description += f" (index: {lock.index_name})"
    if lock.lock_data == SUPREMUM_MARKER:
        description += ", gap after the maximum value"
    elif lock.lock_data == INFIMUM_MARKER:
        description += ", gap before the minimum value"
    elif lock.lock_data is not None:
        description += f", key value: {lock.lock_data}"
    return description


def classify_lock(lock: LockRecord) -> LockClassification:
    """
    Classify a lock record. Total: every record gets a classification.
    """
    lock_type = (lock.lock_type or "").upper()
    tokens = lock.mode_tokens

    if lock_type == LOCK_TYPE_TABLE:
        kind = LockKind.TABLE_LOCK
        scope = "table-level"
        description = f"locks entire table {_qualified_name(lock)}"
    elif lock_type == LOCK_TYPE_RECORD:
        if GAP_TOKEN in tokens:
            kind, scope = LockKind.GAP_LOCK, "gap lock"
        elif INSERT_INTENTION_TOKEN in tokens:
            kind, scope = LockKind.INSERT_INTENTION_LOCK, "insert-intention lock"
        else:
            kind, scope = LockKind.RECORD_LOCK, "row-level"
        description = _record_description(lock)
    else:
        kind = LockKind.UNKNOWN
        scope = ""
        description = f"{lock.lock_type or 'unknown'} lock on {_qualified_name(lock)}"

    icon, color = DISPLAY_HINTS[kind]
    return LockClassification(
        kind=kind,
        scope_label=scope,
        description=description,
        display_icon=icon,
        display_color=color,
        mode_label=mode_label(lock.lock_mode),
    )


__all__ = ["classify_lock", "mode_label", "MODE_LABELS", "DISPLAY_HINTS"]
