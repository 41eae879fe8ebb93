"""
Domain models for the InnoDB Lock Inspector.

Raw models mirror the introspection views they are read from
(`performance_schema.data_locks`, `performance_schema.threads`,
`information_schema.INNODB_TRX`, `information_schema.PROCESSLIST`,
`performance_schema.events_statements_*`, `performance_schema.data_lock_waits`).
Every field carries the column name as its alias so dict-cursor rows validate
directly, while Python code builds instances by field name.

Derived models (classification, enriched lock, wait edge, snapshot) are the
output of the correlation engine in `lock_inspector.core`.
"""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from lock_inspector.utils.logging import get_logger

log = get_logger(__name__)

LOCK_TYPE_TABLE = "TABLE"
LOCK_TYPE_RECORD = "RECORD"
LOCK_STATUS_GRANTED = "GRANTED"
LOCK_STATUS_WAITING = "WAITING"

_MODEL_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "extra": "ignore",
}


def _opaque_id(value: Any) -> Any:
    """Normalize opaque identifiers (ints, bytes) to text."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def split_lock_mode(lock_mode: Optional[str]) -> frozenset[str]:
    """Split a LOCK_MODE value such as `X,REC_NOT_GAP` into exact tokens."""
    if not lock_mode:
        return frozenset()
    return frozenset(t.strip().upper() for t in lock_mode.split(",") if t.strip())


class LockKind(StrEnum):
    TABLE_LOCK = "TABLE_LOCK"
    GAP_LOCK = "GAP_LOCK"
    INSERT_INTENTION_LOCK = "INSERT_INTENTION_LOCK"
    RECORD_LOCK = "RECORD_LOCK"
    UNKNOWN = "UNKNOWN"


class StatementSource(StrEnum):
    """Where the statement attached to a lock was found."""

    CURRENT = "current"
    HISTORY = "history"
    TRANSACTION = "transaction"
    SESSION = "session"


class WaitSource(StrEnum):
    DATA_LOCK_WAITS = "data_lock_waits"
    INFERRED = "inferred"
    NONE = "none"


class LockRecord(BaseModel):
    """
    One row of `performance_schema.data_locks`.

    Identity is structural: the view has no stable key across polls.
    """

    engine: Optional[str] = Field(None, alias="ENGINE")
    transaction_id: Optional[str] = Field(None, alias="ENGINE_TRANSACTION_ID")
    thread_id: Optional[int] = Field(None, alias="THREAD_ID")
    event_id: Optional[int] = Field(None, alias="EVENT_ID")
    engine_lock_id: Optional[str] = Field(None, alias="ENGINE_LOCK_ID")
    object_schema: Optional[str] = Field(None, alias="OBJECT_SCHEMA")
    object_name: Optional[str] = Field(None, alias="OBJECT_NAME")
    index_name: Optional[str] = Field(None, alias="INDEX_NAME")
    lock_type: Optional[str] = Field(None, alias="LOCK_TYPE")
    lock_mode: Optional[str] = Field(None, alias="LOCK_MODE")
    lock_status: Optional[str] = Field(None, alias="LOCK_STATUS")
    lock_data: Optional[str] = Field(None, alias="LOCK_DATA")

    model_config = _MODEL_CONFIG

    @field_validator("transaction_id", "engine_lock_id", "lock_data", mode="before")
    @classmethod
    def normalize_ids(cls, value: Any) -> Any:
        return _opaque_id(value)

    @property
    def mode_tokens(self) -> frozenset[str]:
        """The comma-separated LOCK_MODE split into exact tokens."""
        return split_lock_mode(self.lock_mode)

    @property
    def lock_key(self) -> str:
        """ENGINE_LOCK_ID when present, else a key composed from the locked object."""
        if self.engine_lock_id:
            return self.engine_lock_id
        target = f"{self.object_schema}.{self.object_name}"
        if self.index_name:
            target = f"{target}[{self.index_name}]"
        if self.lock_data is not None:
            target = f"{target}:{self.lock_data}"
        return target


class ThreadMapping(BaseModel):
    """One row of `performance_schema.threads`."""

    thread_id: Optional[int] = Field(None, alias="THREAD_ID")
    session_id: Optional[int] = Field(None, alias="PROCESSLIST_ID")
    name: Optional[str] = Field(None, alias="NAME")

    model_config = _MODEL_CONFIG


class TransactionRecord(BaseModel):
    """One row of `information_schema.INNODB_TRX`."""

    transaction_id: Optional[str] = Field(None, alias="TRX_ID")
    session_id: Optional[int] = Field(None, alias="TRX_MYSQL_THREAD_ID")
    started_at: Optional[datetime] = Field(None, alias="TRX_STARTED")
    duration_seconds: Optional[float] = Field(None, alias="TRX_DURATION_SECONDS")
    state: Optional[str] = Field(None, alias="TRX_STATE")
    wait_started_at: Optional[datetime] = Field(None, alias="TRX_WAIT_STARTED")

    model_config = _MODEL_CONFIG

    @field_validator("transaction_id", mode="before")
    @classmethod
    def normalize_ids(cls, value: Any) -> Any:
        return _opaque_id(value)


class SessionRecord(BaseModel):
    """One row of `information_schema.PROCESSLIST`."""

    session_id: Optional[int] = Field(None, alias="ID")
    user: Optional[str] = Field(None, alias="USER")
    host: Optional[str] = Field(None, alias="HOST")
    db: Optional[str] = Field(None, alias="DB")
    command: Optional[str] = Field(None, alias="COMMAND")
    elapsed_seconds: Optional[float] = Field(None, alias="TIME")
    state: Optional[str] = Field(None, alias="STATE")
    info: Optional[str] = Field(None, alias="INFO")

    model_config = _MODEL_CONFIG


class StatementRecord(BaseModel):
    """One row of `events_statements_current` or `events_statements_history`."""

    thread_id: Optional[int] = Field(None, alias="THREAD_ID")
    event_id: Optional[int] = Field(None, alias="EVENT_ID")
    start_time: Optional[int] = Field(None, alias="TIMER_START")
    end_time: Optional[int] = Field(None, alias="TIMER_END")
    sql_text: Optional[str] = Field(None, alias="SQL_TEXT")
    digest_text: Optional[str] = Field(None, alias="DIGEST_TEXT")
    schema_name: Optional[str] = Field(None, alias="CURRENT_SCHEMA")

    model_config = _MODEL_CONFIG


class LockClassification(BaseModel):
    kind: LockKind
    scope_label: str
    description: str
    display_icon: str
    display_color: str
    mode_label: str

    model_config = _MODEL_CONFIG


class EnrichedLock(LockRecord):
    """
    A lock record joined with its session, transaction, statement and
    classification. Unmatched associations stay None.
    """

    session_id: Optional[int] = None
    lock_duration_seconds: float = 0.0
    transaction_started_at: Optional[datetime] = None
    transaction_state: Optional[str] = None
    statement: Optional[StatementRecord] = None
    statement_source: Optional[StatementSource] = None
    recent_statements: List[StatementRecord] = Field(default_factory=list)
    session_user: Optional[str] = None
    session_host: Optional[str] = None
    session_db: Optional[str] = None
    session_command: Optional[str] = None
    session_state: Optional[str] = None
    classification: LockClassification


class WaitEdge(BaseModel):
    """
    A wait-for relationship: the waiting side is blocked by the blocking side.

    Aliases follow `performance_schema.data_lock_waits`.
    """

    waiting_transaction_id: Optional[str] = Field(None, alias="REQUESTING_ENGINE_TRANSACTION_ID")
    waiting_thread_id: Optional[int] = Field(None, alias="REQUESTING_THREAD_ID")
    waiting_event_id: Optional[int] = Field(None, alias="REQUESTING_EVENT_ID")
    waiting_lock_key: Optional[str] = Field(None, alias="REQUESTING_ENGINE_LOCK_ID")
    blocking_transaction_id: Optional[str] = Field(None, alias="BLOCKING_ENGINE_TRANSACTION_ID")
    blocking_thread_id: Optional[int] = Field(None, alias="BLOCKING_THREAD_ID")
    blocking_event_id: Optional[int] = Field(None, alias="BLOCKING_EVENT_ID")
    blocking_lock_key: Optional[str] = Field(None, alias="BLOCKING_ENGINE_LOCK_ID")
    source: WaitSource = WaitSource.DATA_LOCK_WAITS

    model_config = _MODEL_CONFIG

    @field_validator(
        "waiting_transaction_id",
        "waiting_lock_key",
        "blocking_transaction_id",
        "blocking_lock_key",
        mode="before",
    )
    @classmethod
    def normalize_ids(cls, value: Any) -> Any:
        return _opaque_id(value)


class BlockingSummary(BaseModel):
    blocking: bool = False
    root_blockers: List[str] = Field(default_factory=list)
    blocked_transactions: List[str] = Field(default_factory=list)
    max_chain_depth: int = 0
    cycles: List[List[str]] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class SnapshotBatches(BaseModel):
    """
    The input batches for one snapshot.

    `raw_wait_edges` is None when the direct wait source could not be read;
    an empty list means it was read and returned nothing.
    """

    locks: List[LockRecord] = Field(default_factory=list)
    threads: List[ThreadMapping] = Field(default_factory=list)
    transactions: List[TransactionRecord] = Field(default_factory=list)
    sessions: List[SessionRecord] = Field(default_factory=list)
    statements_current: List[StatementRecord] = Field(default_factory=list)
    statements_history: List[StatementRecord] = Field(default_factory=list)
    raw_wait_edges: Optional[List[Mapping[str, Any]]] = None

    model_config = _MODEL_CONFIG

    @classmethod
    def from_rows(
        cls,
        locks: Iterable[Mapping[str, Any]] = (),
        threads: Iterable[Mapping[str, Any]] = (),
        transactions: Iterable[Mapping[str, Any]] = (),
        sessions: Iterable[Mapping[str, Any]] = (),
        statements_current: Iterable[Mapping[str, Any]] = (),
        statements_history: Iterable[Mapping[str, Any]] = (),
        raw_wait_edges: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> "SnapshotBatches":
        """Build batches from raw dict rows, skipping rows that cannot be parsed."""
        return cls(
            locks=parse_rows(LockRecord, locks),
            threads=parse_rows(ThreadMapping, threads),
            transactions=parse_rows(TransactionRecord, transactions),
            sessions=parse_rows(SessionRecord, sessions),
            statements_current=parse_rows(StatementRecord, statements_current),
            statements_history=parse_rows(StatementRecord, statements_history),
            raw_wait_edges=list(raw_wait_edges) if raw_wait_edges is not None else None,
        )


class LockSnapshot(BaseModel):
    """The unified result of one correlation run."""

    locks: List[EnrichedLock] = Field(default_factory=list)
    wait_edges: List[WaitEdge] = Field(default_factory=list)
    sessions: List[SessionRecord] = Field(default_factory=list)
    transactions: List[TransactionRecord] = Field(default_factory=list)
    snapshot_timestamp: datetime
    wait_source: WaitSource = WaitSource.NONE
    blocking: BlockingSummary = Field(default_factory=BlockingSummary)

    model_config = _MODEL_CONFIG


ModelT = TypeVar("ModelT", bound=BaseModel)


def _field_keys(model: Type[BaseModel], loc_name: str) -> set[str]:
    """Return both the field name and alias that an error location refers to."""
    for name, info in model.model_fields.items():
        if loc_name in (name, info.alias):
            return {name, info.alias} - {None}
    return {loc_name}


def parse_row(model: Type[ModelT], row: Mapping[str, Any]) -> Optional[ModelT]:
    """
    Validate one raw row leniently.

    Fields pydantic rejects are set to None and validation is retried once.
    Returns None (and logs a warning) when the row still cannot be parsed.
    """
    if not isinstance(row, Mapping):
        log.warning(
            "Skipping non-mapping row",
            extra={"model": model.__name__, "row_type": type(row).__name__},
        )
        return None
    try:
        return model.model_validate(row)
    except ValidationError as exc:
        rejected: set[str] = set()
        for error in exc.errors():
            if error["loc"]:
                rejected |= _field_keys(model, str(error["loc"][0]))

    log.warning(
        "Nulling malformed fields",
        extra={"model": model.__name__, "fields": sorted(rejected)},
    )
    patched = {key: (None if key in rejected else value) for key, value in row.items()}
    try:
        return model.model_validate(patched)
    except ValidationError:
        log.warning("Skipping malformed row", extra={"model": model.__name__})
        return None


def parse_rows(model: Type[ModelT], rows: Iterable[Mapping[str, Any]]) -> List[ModelT]:
    """Validate a batch of raw rows, keeping input order and dropping unparseable rows."""
    parsed: List[ModelT] = []
    for row in rows or ():
        record = parse_row(model, row)
        if record is not None:
            parsed.append(record)
    return parsed


__all__ = [
    "LOCK_STATUS_GRANTED",
    "LOCK_STATUS_WAITING",
    "LOCK_TYPE_RECORD",
    "LOCK_TYPE_TABLE",
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
    "parse_row",
    "parse_rows",
    "split_lock_mode",
]
