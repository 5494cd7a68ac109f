"""Rate-limited, deduplicating crawl request queue.

Hands batches of pending crawl requests to a consumer, throttled by a
configurable delay, optionally persisted in SQLite across restarts.

Key modules:
    clock       -- Clock, RealClock, FakeClock
    models      -- WorkItem, DeliveryRecord, URL key normalization
    codec       -- versioned payload encoding for stored items
    errors      -- QueueError hierarchy
    namespace   -- namespace sanitization and partition paths
    storage     -- StorageBase, SqliteStorage, InMemoryStorage
    scheduler   -- SchedulerBase, EphemeralScheduler, DurableScheduler
    pipeline    -- QueuePipeline and PurgeSchedulerStage
    config      -- QueueConfig
    factory     -- SchedulerFactory
    log         -- logging bootstrap
"""

__version__ = "0.1.0"
