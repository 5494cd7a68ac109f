from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from .clock import Clock, RealClock
from .models import WorkItem
from .namespace import DEFAULT_NAMESPACE, sanitize_namespace
from .storage import StorageBase

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 25


class SchedulerBase(ABC):
    """Abstract base class for request schedulers.

    Holds the throttle window shared by both implementations: a batch may
    only be claimed once the clock reaches next_batch_ready_at, and every
    throttled claim pushes that timestamp to now + delay. The window belongs
    to this instance only; consumers in other processes throttle on their
    own even when they share a durable partition.

    Instances are not thread-safe. One consumer loop owns one scheduler."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or RealClock()
        self._delay = 0.0
        self._batch_size = DEFAULT_BATCH_SIZE
        self._next_batch_ready_at = self._clock.now()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def next_batch_ready_at(self) -> float:
        return self._next_batch_ready_at

    @property
    @abstractmethod
    def namespace(self) -> str:
        ...

    def next_requests(
        self,
        batch_size: Optional[int] = None,
        deadline: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> List[WorkItem]:
        """Wait for the throttle window, then claim up to batch_size items.

        If the window opens after deadline, or cancel fires while waiting,
        nothing is claimed, the window is left alone and [] is returned."""
        size = self._resolve_batch_size(batch_size)
        ready_at = self._next_batch_ready_at
        if deadline is not None and ready_at > deadline:
            logger.debug("Next batch ready at %.3f, past deadline %.3f", ready_at, deadline)
            return []
        if not self._clock.sleep_until(ready_at, cancel):
            logger.debug("Wait for next batch cancelled")
            return []
        self._next_batch_ready_at = self._clock.now() + self._delay
        return self._take(size)

    def force_next_requests(self, batch_size: Optional[int] = None) -> List[WorkItem]:
        """Claim up to batch_size items right away, ignoring the throttle window."""
        return self._take(self._resolve_batch_size(batch_size))

    def set_delay(self, seconds: float) -> "SchedulerBase":
        if seconds < 0:
            raise ValueError(f"delay must be >= 0, got {seconds}")
        self._delay = seconds
        return self

    def set_batch_size(self, batch_size: int) -> "SchedulerBase":
        if batch_size < 0:
            raise ValueError(f"batch_size must be >= 0, got {batch_size}")
        self._batch_size = batch_size
        return self

    def _resolve_batch_size(self, batch_size: Optional[int]) -> int:
        size = self._batch_size if batch_size is None else batch_size
        if size < 0:
            raise ValueError(f"batch_size must be >= 0, got {size}")
        return size

    @abstractmethod
    def schedule(self, item: WorkItem) -> None:
        ...

    @abstractmethod
    def empty(self) -> bool:
        ...

    @abstractmethod
    def set_namespace(self, namespace: str) -> "SchedulerBase":
        ...

    @abstractmethod
    def purge(self) -> None:
        ...

    @abstractmethod
    def pending_count(self) -> int:
        ...

    def close(self) -> None:
        """Release resources held by the scheduler."""

    @abstractmethod
    def _take(self, batch_size: int) -> List[WorkItem]:
        """Remove and return up to batch_size of the oldest pending items."""


class EphemeralScheduler(SchedulerBase):
    """Keeps pending items in a list for the lifetime of the process.

    No deduplication: every scheduled item is appended."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._requests: List[WorkItem] = []
        self._namespace = DEFAULT_NAMESPACE

    @property
    def namespace(self) -> str:
        return self._namespace

    def schedule(self, item: WorkItem) -> None:
        self._requests.append(item)

    def empty(self) -> bool:
        return not self._requests

    def set_namespace(self, namespace: str) -> "EphemeralScheduler":
        self._namespace = sanitize_namespace(namespace)
        return self

    def purge(self) -> None:
        self._requests.clear()

    def pending_count(self) -> int:
        return len(self._requests)

    def _take(self, batch_size: int) -> List[WorkItem]:
        batch = self._requests[:batch_size]
        del self._requests[:batch_size]
        return batch


class DurableScheduler(SchedulerBase):
    """Delegates storage to a StorageBase adapter.

    Items are deduplicated by their logical key and survive restarts when
    the adapter is persistent."""

    def __init__(self, storage: StorageBase, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._storage = storage

    @property
    def storage(self) -> StorageBase:
        return self._storage

    @property
    def namespace(self) -> str:
        return self._storage.namespace

    def schedule(self, item: WorkItem) -> None:
        self._storage.push_item(item, item.logical_key)

    def empty(self) -> bool:
        return self._storage.is_empty()

    def set_namespace(self, namespace: str) -> "DurableScheduler":
        self._storage.set_namespace(namespace)
        return self

    def purge(self) -> None:
        self._storage.purge()

    def pending_count(self) -> int:
        return self._storage.pending_count()

    def close(self) -> None:
        self._storage.close()

    def _take(self, batch_size: int) -> List[WorkItem]:
        return self._storage.pull_items(batch_size)
