from __future__ import annotations


class QueueError(Exception):
    """Base class for every error raised by the crawl queue."""


class StorageError(QueueError):
    """The backing store failed (I/O, locking, corruption).

    Propagated to the caller as-is; the failed operation is not retried."""


class DuplicateKeyConflict(StorageError):
    """A record with the same logical key already exists in the partition."""

    def __init__(self, key: str) -> None:
        super().__init__(f"duplicate key: {key}")
        self.key = key


class DeserializationError(QueueError):
    """A stored payload could not be turned back into a WorkItem."""


class EncodingError(QueueError, ValueError):
    """A WorkItem could not be encoded for storage."""


class SkippedPayloadWarning(UserWarning):
    """Emitted when a claimed record is dropped because it could not be decoded."""
