from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional

from .models import WorkItem
from .scheduler import SchedulerBase

logger = logging.getLogger(__name__)


class StartupStage(ABC):
    """A step the pipeline runs once, before any work is scheduled."""

    @abstractmethod
    def run(self, scheduler: SchedulerBase) -> None:
        raise NotImplementedError


class PurgeSchedulerStage(StartupStage):
    """Resets the scheduler's queue when the pipeline starts.

    Only meaningful for durable schedulers, whose queue outlives the process.
    Purges at most once per stage instance."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def run(self, scheduler: SchedulerBase) -> None:
        if not self._enabled or self._done:
            return
        logger.info("Purging queue for namespace %r before start", scheduler.namespace)
        scheduler.purge()
        self._done = True


class QueuePipeline:
    """Owns one scheduler and the consumer loop that drains it."""

    def __init__(self, scheduler: SchedulerBase, stages: Optional[Iterable[StartupStage]] = None) -> None:
        self._scheduler = scheduler
        self._stages: List[StartupStage] = list(stages or [])
        self._started = False

    @property
    def scheduler(self) -> SchedulerBase:
        return self._scheduler

    def start(self) -> None:
        """Run the startup stages in order. Later calls do nothing."""
        if self._started:
            return
        for stage in self._stages:
            stage.run(self._scheduler)
        self._started = True

    def schedule(self, item: WorkItem) -> None:
        self.start()
        self._scheduler.schedule(item)

    def drain(
        self,
        handler: Callable[[WorkItem], None],
        batch_size: Optional[int] = None,
        on_batch: Optional[Callable[[List[WorkItem]], None]] = None,
    ) -> int:
        """Pull batches until the queue is empty, passing each item to handler.

        Returns the number of items handled."""
        size = self._scheduler.batch_size if batch_size is None else batch_size
        if size <= 0:
            raise ValueError(f"drain needs a positive batch_size, got {size}")
        self.start()
        handled = 0
        while not self._scheduler.empty():
            batch = self._scheduler.next_requests(size)
            if on_batch is not None:
                on_batch(batch)
            for item in batch:
                handler(item)
                handled += 1
        return handled
