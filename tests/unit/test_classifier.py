from __future__ import annotations

import pytest

from lock_inspector.core.classifier import DISPLAY_HINTS, classify_lock, mode_label
from lock_inspector.domain.models import LockKind


@pytest.mark.parametrize("lock_mode", ["IX", "IS", "X", "S", "AUTO_INC", None])
def test_table_lock_regardless_of_mode(make_lock, lock_mode) -> None:
    lock = make_lock(lock_type="TABLE", lock_mode=lock_mode, index_name=None, lock_data=None)

    classification = classify_lock(lock)

    assert classification.kind == LockKind.TABLE_LOCK
    assert classification.scope_label == "table-level"
    assert classification.description == "locks entire table db1.orders"


def test_gap_token_wins_over_insert_intention(make_lock) -> None:
    lock = make_lock(lock_mode="X,GAP,INSERT_INTENTION")

    classification = classify_lock(lock)

    assert classification.kind == LockKind.GAP_LOCK
    assert classification.scope_label == "gap lock"


def test_insert_intention_without_gap_token(make_lock) -> None:
    lock = make_lock(lock_mode="X,INSERT_INTENTION", lock_status="WAITING")

    assert classify_lock(lock).kind == LockKind.INSERT_INTENTION_LOCK


def test_rec_not_gap_is_not_a_gap_lock(make_lock) -> None:
    classification = classify_lock(make_lock(lock_mode="X,REC_NOT_GAP"))

    assert classification.kind == LockKind.RECORD_LOCK
    assert classification.scope_label == "row-level"
    assert classification.mode_label == "exclusive"


def test_record_description_primary_index_and_key(make_lock) -> None:
    classification = classify_lock(make_lock(index_name="PRIMARY", lock_data="100"))

    assert classification.description == "table db1.orders, key value: 100"


def test_record_description_secondary_index(make_lock) -> None:
    classification = classify_lock(make_lock(index_name="idx_customer", lock_data="42, 100"))

    assert classification.description == "table db1.orders (index: idx_customer), key value: 42, 100"


def test_record_description_supremum_and_infimum(make_lock) -> None:
    supremum = classify_lock(make_lock(lock_mode="X", lock_data="supremum pseudo-record"))
    infimum = classify_lock(make_lock(lock_mode="X", lock_data="infimum pseudo-record"))

    assert supremum.description.endswith("gap after the maximum value")
    assert infimum.description.endswith("gap before the minimum value")


def test_record_description_without_lock_data(make_lock) -> None:
    classification = classify_lock(make_lock(index_name=None, lock_data=None))

    assert classification.description == "table db1.orders"


def test_unknown_lock_type(make_lock) -> None:
    classification = classify_lock(make_lock(lock_type="PREDICATE"))

    assert classification.kind == LockKind.UNKNOWN
    assert classification.scope_label == ""
    assert "db1.orders" in classification.description


def test_missing_lock_type_is_unknown(make_lock) -> None:
    assert classify_lock(make_lock(lock_type=None, lock_mode=None)).kind == LockKind.UNKNOWN


@pytest.mark.parametrize(
    ("lock_mode", "expected"),
    [
        ("IX", "intent-exclusive"),
        ("IS", "intent-shared"),
        ("X", "exclusive"),
        ("S", "shared"),
        ("S,GAP", "shared"),
        ("X,GAP,INSERT_INTENTION", "exclusive"),
        ("AUTO_INC", "auto-increment"),
        ("IS,S", "shared"),
    ],
)
def test_mode_label_matches_whole_tokens(lock_mode: str, expected: str) -> None:
    assert mode_label(lock_mode) == expected


def test_mode_label_falls_back_to_raw_mode() -> None:
    assert mode_label("WEIRD") == "WEIRD"
    assert mode_label(None) == "unknown"
    assert mode_label("") == "unknown"


def test_display_hints_are_deterministic_per_kind(make_lock) -> None:
    first = classify_lock(make_lock(lock_type="TABLE"))
    second = classify_lock(make_lock(lock_type="TABLE", lock_mode="IS"))

    assert (first.display_icon, first.display_color) == DISPLAY_HINTS[LockKind.TABLE_LOCK]
    assert (first.display_icon, first.display_color) == (second.display_icon, second.display_color)
    assert set(DISPLAY_HINTS) == set(LockKind)
