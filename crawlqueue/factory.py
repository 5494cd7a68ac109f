from __future__ import annotations

from typing import Optional

from .clock import Clock, RealClock
from .config import BACKEND_MEMORY, BACKEND_SQLITE, QueueConfig
from .pipeline import PurgeSchedulerStage, QueuePipeline
from .scheduler import DurableScheduler, EphemeralScheduler, SchedulerBase
from .storage import SqliteStorage


class SchedulerFactory:
    """Builds configured schedulers and pipelines from a QueueConfig.

    All schedulers built by one factory share its clock."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or RealClock()

    def create_scheduler(self, config: QueueConfig) -> SchedulerBase:
        if config.backend == BACKEND_MEMORY:
            scheduler: SchedulerBase = EphemeralScheduler(clock=self._clock)
        elif config.backend == BACKEND_SQLITE:
            storage = SqliteStorage(
                storage_dir=config.storage_dir,
                namespace=config.namespace,
                clock=self._clock,
            )
            scheduler = DurableScheduler(storage, clock=self._clock)
        else:
            raise ValueError(f"Unknown backend: {config.backend}")

        scheduler.set_namespace(config.namespace)
        scheduler.set_delay(config.delay)
        scheduler.set_batch_size(config.batch_size)
        return scheduler

    def create_pipeline(self, config: QueueConfig) -> QueuePipeline:
        scheduler = self.create_scheduler(config)
        stages = [PurgeSchedulerStage()] if config.purge_on_start else []
        return QueuePipeline(scheduler, stages)
