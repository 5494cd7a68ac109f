from __future__ import annotations

import logging
import os
import sqlite3
import threading
import warnings
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from .clock import Clock, RealClock
from .codec import decode_item, encode_item
from .errors import DeserializationError, DuplicateKeyConflict, SkippedPayloadWarning, StorageError
from .models import DeliveryRecord, WorkItem
from .namespace import DEFAULT_NAMESPACE, partition_path, sanitize_namespace

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS queue (
    payload BLOB NOT NULL,
    "key" TEXT NOT NULL,
    taken BOOLEAN DEFAULT 0 NOT NULL,
    inserted_at REAL NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ix_queue_key ON queue ("key");
CREATE INDEX IF NOT EXISTS ix_queue_pending ON queue (taken, inserted_at);
"""


class StorageBase(ABC):
    """Abstract base class for durable queue backends.

    A backend holds one partition per namespace. Namespace names are
    sanitized here, so every caller of an adapter agrees on which
    partition a raw name maps to."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or RealClock()
        self._namespace = DEFAULT_NAMESPACE

    @property
    def namespace(self) -> str:
        return self._namespace

    def set_namespace(self, namespace: str) -> None:
        """Bind the adapter to the partition for the given raw name."""
        name = sanitize_namespace(namespace)
        self._bind(name)
        self._namespace = name
        logger.info("Storage bound to namespace %r", self._namespace)

    def push_item(self, item: WorkItem, key: str) -> None:
        """Insert an untaken record; a record already holding key makes this a no-op."""
        payload = encode_item(item)
        try:
            self._insert(payload, key, self._clock.now())
        except DuplicateKeyConflict:
            logger.debug("Skipping duplicate key %r in namespace %r", key, self._namespace)

    def pull_items(self, batch_size: int) -> List[WorkItem]:
        """Claim up to batch_size oldest untaken records and return their items."""
        if batch_size <= 0:
            return []
        claimed = self._claim(batch_size)
        if claimed:
            logger.debug("Claimed %d record(s) from namespace %r", len(claimed), self._namespace)
        return self._decode(claimed)

    @abstractmethod
    def is_empty(self) -> bool:
        """Return True if no untaken record remains."""

    @abstractmethod
    def pending_count(self) -> int:
        """Return the number of untaken records."""

    @abstractmethod
    def purge(self) -> None:
        """Delete every record, taken or not, in the current partition."""

    def close(self) -> None:
        """Release resources held by the adapter."""

    def __enter__(self) -> "StorageBase":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @abstractmethod
    def _bind(self, namespace: str) -> None:
        ...

    @abstractmethod
    def _insert(self, payload: bytes, key: str, inserted_at: float) -> None:
        """Insert one record, raising DuplicateKeyConflict on a key collision."""

    @abstractmethod
    def _claim(self, batch_size: int) -> List[Tuple[str, bytes]]:
        """Atomically select and mark taken the oldest untaken records.

        Returns (key, payload) pairs in insertion order."""

    def _decode(self, claimed: Iterable[Tuple[str, bytes]]) -> List[WorkItem]:
        items: List[WorkItem] = []
        for key, payload in claimed:
            # The batch is already marked taken; one bad record must not cost the rest.
            try:
                items.append(decode_item(payload))
            except DeserializationError as exc:
                self._warn_skipped(key, str(exc))
            except Exception as exc:  # noqa: BLE001
                self._warn_skipped(key, f"{type(exc).__name__}: {exc}")
        return items

    def _warn_skipped(self, key: str, reason: str) -> None:
        warnings.warn(
            f"Skipping undecodable record {key!r} in namespace {self._namespace!r}: {reason}",
            SkippedPayloadWarning,
            stacklevel=4,
        )


class SqliteStorage(StorageBase):
    """Stores queue records in one SQLite file per namespace.

    The adapter owns a single connection. It is opened on first use of the
    bound partition, so rebinding before any I/O leaves no stray files, and
    released by close(). Claims run inside BEGIN IMMEDIATE so that
    concurrent processes sharing a partition never select the same rows."""

    def __init__(
        self,
        storage_dir: str = "storage",
        namespace: str = "",
        clock: Optional[Clock] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(clock)
        self._storage_dir = storage_dir
        self._timeout = timeout
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._path: Optional[str] = None
        self._closed = False
        self.set_namespace(namespace)

    @property
    def path(self) -> Optional[str]:
        return self._path

    def _bind(self, namespace: str) -> None:
        path = partition_path(self._storage_dir, namespace)
        with self._lock:
            self._closed = False
            if path == self._path:
                return
            self._close_locked()
            self._path = path

    def _connection(self) -> sqlite3.Connection:
        """Return the partition connection, opening it on first use. Caller holds the lock."""
        if self._closed or self._path is None:
            raise StorageError("storage is closed")
        if self._conn is None:
            try:
                os.makedirs(self._storage_dir, exist_ok=True)
                conn = sqlite3.connect(
                    self._path,
                    timeout=self._timeout,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(SCHEMA)
            except (OSError, sqlite3.Error) as exc:
                raise StorageError(f"cannot open partition {self._path}: {exc}") from exc
            self._conn = conn
        return self._conn

    def _insert(self, payload: bytes, key: str, inserted_at: float) -> None:
        with self._lock:
            conn = self._connection()
            try:
                conn.execute(
                    'INSERT INTO queue (payload, "key", taken, inserted_at) VALUES (?, ?, 0, ?)',
                    (sqlite3.Binary(payload), key, inserted_at),
                )
            except sqlite3.IntegrityError as exc:
                if "UNIQUE" in str(exc).upper():
                    raise DuplicateKeyConflict(key) from exc
                raise StorageError(f"insert failed for key {key!r}: {exc}") from exc
            except sqlite3.Error as exc:
                raise StorageError(f"insert failed for key {key!r}: {exc}") from exc

    def _claim(self, batch_size: int) -> List[Tuple[str, bytes]]:
        with self._lock:
            conn = self._connection()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    rows = conn.execute(
                        'SELECT rowid, "key", payload FROM queue WHERE taken = 0 '
                        "ORDER BY inserted_at, rowid LIMIT ?",
                        (batch_size,),
                    ).fetchall()
                    if rows:
                        conn.executemany(
                            "UPDATE queue SET taken = 1 WHERE rowid = ?",
                            [(row[0],) for row in rows],
                        )
                    conn.execute("COMMIT")
                except BaseException:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as exc:
                raise StorageError(f"claim failed in {self._path}: {exc}") from exc
        return [(key, bytes(payload)) for _, key, payload in rows]

    def is_empty(self) -> bool:
        with self._lock:
            try:
                row = self._connection().execute("SELECT 1 FROM queue WHERE taken = 0 LIMIT 1").fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"emptiness check failed in {self._path}: {exc}") from exc
        return row is None

    def pending_count(self) -> int:
        with self._lock:
            try:
                (count,) = self._connection().execute("SELECT COUNT(*) FROM queue WHERE taken = 0").fetchone()
            except sqlite3.Error as exc:
                raise StorageError(f"count failed in {self._path}: {exc}") from exc
        return int(count)

    def purge(self) -> None:
        with self._lock:
            try:
                self._connection().execute("DELETE FROM queue")
            except sqlite3.Error as exc:
                raise StorageError(f"purge failed in {self._path}: {exc}") from exc
        logger.info("Purged namespace %r", self._namespace)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._close_locked()

    def _close_locked(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


@dataclass
class _Partition:
    records: Dict[str, DeliveryRecord] = field(default_factory=dict)
    pending: Deque[str] = field(default_factory=deque)


class InMemoryStorage(StorageBase):
    """Process-local backend with the same dedup and claim rules as SQLite.

    Nothing survives the process; useful for tests and short crawls that
    still want duplicate suppression. Untaken keys are kept in insertion
    order in a deque, so claims and counts never walk taken records."""

    def __init__(self, namespace: str = "", clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._lock = threading.Lock()
        self._partitions: Dict[str, _Partition] = {}
        self.set_namespace(namespace)

    def _partition(self) -> _Partition:
        return self._partitions.setdefault(self._namespace, _Partition())

    def _bind(self, namespace: str) -> None:
        with self._lock:
            self._partitions.setdefault(namespace, _Partition())

    def _insert(self, payload: bytes, key: str, inserted_at: float) -> None:
        with self._lock:
            partition = self._partition()
            if key in partition.records:
                raise DuplicateKeyConflict(key)
            partition.records[key] = DeliveryRecord(payload=payload, key=key, taken=False, inserted_at=inserted_at)
            partition.pending.append(key)

    def _claim(self, batch_size: int) -> List[Tuple[str, bytes]]:
        claimed: List[Tuple[str, bytes]] = []
        with self._lock:
            partition = self._partition()
            while partition.pending and len(claimed) < batch_size:
                key = partition.pending.popleft()
                record = replace(partition.records[key], taken=True)
                partition.records[key] = record
                claimed.append((key, record.payload))
        return claimed

    def is_empty(self) -> bool:
        return self.pending_count() == 0

    def pending_count(self) -> int:
        with self._lock:
            return len(self._partition().pending)

    def purge(self) -> None:
        with self._lock:
            self._partitions[self._namespace] = _Partition()
        logger.info("Purged namespace %r", self._namespace)
