from __future__ import annotations

from lock_inspector.core.wait_graph import build_wait_edges, infer_wait_edges
from lock_inspector.domain.models import WaitSource


def _wait_row(waiting: str, blocking: str, **overrides):
    row = {
        "REQUESTING_ENGINE_TRANSACTION_ID": waiting,
        "REQUESTING_THREAD_ID": 102,
        "REQUESTING_EVENT_ID": 8,
        "REQUESTING_ENGINE_LOCK_ID": f"{waiting}:lock",
        "BLOCKING_ENGINE_TRANSACTION_ID": blocking,
        "BLOCKING_THREAD_ID": 101,
        "BLOCKING_EVENT_ID": 10,
        "BLOCKING_ENGINE_LOCK_ID": f"{blocking}:lock",
    }
    row.update(overrides)
    return row


def test_inferred_edge_for_waiting_and_granted_on_same_key(make_lock) -> None:
    granted = make_lock(transaction_id="T1", thread_id=101)
    waiting = make_lock(transaction_id="T2", thread_id=102, event_id=8, lock_status="WAITING")

    edges = infer_wait_edges([granted, waiting])

    assert len(edges) == 1
    edge = edges[0]
    assert edge.waiting_transaction_id == "T2"
    assert edge.waiting_thread_id == 102
    assert edge.blocking_transaction_id == "T1"
    assert edge.blocking_thread_id == 101
    assert edge.source == WaitSource.INFERRED


def test_no_inferred_edge_within_one_transaction(make_lock) -> None:
    granted = make_lock(transaction_id="T1")
    waiting = make_lock(transaction_id="T1", lock_status="WAITING")

    assert infer_wait_edges([granted, waiting]) == []


def test_no_inferred_edge_for_different_keys(make_lock) -> None:
    granted = make_lock(transaction_id="T1", lock_data="100")
    waiting = make_lock(transaction_id="T2", lock_data="101", lock_status="WAITING")

    assert infer_wait_edges([granted, waiting]) == []


def test_inference_joins_null_index_and_data(make_lock) -> None:
    granted = make_lock(transaction_id="T1", lock_type="TABLE", index_name=None, lock_data=None)
    waiting = make_lock(
        transaction_id="T2",
        lock_type="TABLE",
        index_name=None,
        lock_data=None,
        lock_status="WAITING",
    )

    edges = infer_wait_edges([granted, waiting])

    assert [(e.waiting_transaction_id, e.blocking_transaction_id) for e in edges] == [("T2", "T1")]


def test_inference_pairs_every_granted_holder_in_order(make_lock) -> None:
    locks = [
        make_lock(transaction_id="T1", lock_mode="S,REC_NOT_GAP"),
        make_lock(transaction_id="T3", lock_mode="S,REC_NOT_GAP"),
        make_lock(transaction_id="T2", lock_status="WAITING"),
    ]

    edges = infer_wait_edges(locks)

    assert [e.blocking_transaction_id for e in edges] == ["T1", "T3"]


def test_direct_rows_take_precedence(make_lock) -> None:
    granted = make_lock(transaction_id="T1")
    waiting = make_lock(transaction_id="T2", lock_status="WAITING")

    edges, source = build_wait_edges([granted, waiting], [_wait_row("T9", "T8")])

    assert source == WaitSource.DATA_LOCK_WAITS
    assert [(e.waiting_transaction_id, e.blocking_transaction_id) for e in edges] == [("T9", "T8")]
    assert edges[0].waiting_lock_key == "T9:lock"
    assert edges[0].source == WaitSource.DATA_LOCK_WAITS


def test_direct_rows_normalize_numeric_ids() -> None:
    edges, _ = build_wait_edges([], [_wait_row(421, 420)])

    assert edges[0].waiting_transaction_id == "421"
    assert edges[0].blocking_transaction_id == "420"


def test_malformed_direct_rows_are_tolerated() -> None:
    rows = [
        _wait_row("T2", "T1", REQUESTING_THREAD_ID="not-a-number"),
        "garbage",
    ]

    edges, source = build_wait_edges([], rows)

    assert source == WaitSource.DATA_LOCK_WAITS
    assert len(edges) == 1
    assert edges[0].waiting_thread_id is None
    assert edges[0].blocking_transaction_id == "T1"


def test_direct_rows_without_wait_columns_fall_back(make_lock) -> None:
    locks = [
        make_lock(transaction_id="T1"),
        make_lock(transaction_id="T2", lock_status="WAITING"),
    ]

    edges, source = build_wait_edges(locks, [{"UNRELATED": 1}])

    assert source == WaitSource.INFERRED
    assert [(e.waiting_transaction_id, e.blocking_transaction_id) for e in edges] == [("T2", "T1")]


def test_direct_row_missing_one_side_is_skipped() -> None:
    rows = [
        {"REQUESTING_ENGINE_TRANSACTION_ID": "T2", "REQUESTING_THREAD_ID": 102},
        _wait_row("T3", "T1"),
    ]

    edges, source = build_wait_edges([], rows)

    assert source == WaitSource.DATA_LOCK_WAITS
    assert [e.waiting_transaction_id for e in edges] == ["T3"]


def test_empty_or_missing_direct_source_falls_back(make_lock) -> None:
    locks = [
        make_lock(transaction_id="T1"),
        make_lock(transaction_id="T2", lock_status="WAITING"),
    ]

    for raw in (None, [], ["garbage"]):
        edges, source = build_wait_edges(locks, raw)
        assert source == WaitSource.INFERRED
        assert len(edges) == 1


def test_no_edges_from_either_source(make_lock) -> None:
    edges, source = build_wait_edges([make_lock()], None)

    assert edges == []
    assert source == WaitSource.NONE
