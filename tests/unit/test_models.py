from __future__ import annotations

import logging

from lock_inspector.domain.models import (
    LockRecord,
    SessionRecord,
    SnapshotBatches,
    TransactionRecord,
    parse_row,
    parse_rows,
    split_lock_mode,
)


def test_lock_row_parsed_by_column_name() -> None:
    lock = parse_row(
        LockRecord,
        {
            "ENGINE_TRANSACTION_ID": 421937,
            "THREAD_ID": 55,
            "LOCK_TYPE": "RECORD",
            "LOCK_MODE": "X,GAP",
            "LOCK_DATA": 7,
            "UNRELATED_COLUMN": "ignored",
        },
    )

    assert lock is not None
    assert lock.transaction_id == "421937"
    assert lock.lock_data == "7"
    assert lock.thread_id == 55
    assert lock.mode_tokens == frozenset({"X", "GAP"})


def test_binary_transaction_id_is_decoded() -> None:
    trx = parse_row(TransactionRecord, {"TRX_ID": b"281479", "TRX_MYSQL_THREAD_ID": 9})

    assert trx.transaction_id == "281479"


def test_malformed_field_is_nulled(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        session = parse_row(SessionRecord, {"ID": "twelve", "USER": "app", "TIME": 3})

    assert session is not None
    assert session.session_id is None
    assert session.user == "app"
    assert session.elapsed_seconds == 3
    assert "Nulling malformed fields" in caplog.text


def test_non_mapping_rows_are_skipped() -> None:
    rows = [{"ID": 1}, ("not", "a", "mapping"), None, {"ID": 2}]

    sessions = parse_rows(SessionRecord, rows)

    assert [s.session_id for s in sessions] == [1, 2]


def test_lock_key_falls_back_to_locked_object() -> None:
    lock = LockRecord(object_schema="db1", object_name="orders", index_name="PRIMARY", lock_data="5")

    assert lock.lock_key == "db1.orders[PRIMARY]:5"
    assert LockRecord(engine_lock_id="140:9").lock_key == "140:9"


def test_split_lock_mode_uses_whole_tokens() -> None:
    assert split_lock_mode("x, rec_not_gap") == frozenset({"X", "REC_NOT_GAP"})
    assert "GAP" not in split_lock_mode("X,REC_NOT_GAP")
    assert split_lock_mode(None) == frozenset()


def test_batches_keep_missing_wait_source_distinct_from_empty() -> None:
    assert SnapshotBatches.from_rows().raw_wait_edges is None
    assert SnapshotBatches.from_rows(raw_wait_edges=[]).raw_wait_edges == []
