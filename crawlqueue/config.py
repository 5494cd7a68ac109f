from __future__ import annotations

import argparse
from dataclasses import dataclass

from .scheduler import DEFAULT_BATCH_SIZE

BACKEND_MEMORY = "memory"
BACKEND_SQLITE = "sqlite"
BACKENDS = (BACKEND_MEMORY, BACKEND_SQLITE)

DEFAULT_STORAGE_DIR = "storage"


@dataclass(frozen=True)
class QueueConfig:
    backend: str = BACKEND_MEMORY
    storage_dir: str = DEFAULT_STORAGE_DIR
    namespace: str = ""
    delay: float = 0
    batch_size: int = DEFAULT_BATCH_SIZE
    purge_on_start: bool = False

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend: {self.backend}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")
        if self.batch_size < 0:
            raise ValueError(f"batch_size must be >= 0, got {self.batch_size}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "QueueConfig":
        return cls(
            backend=args.backend,
            storage_dir=args.storage_dir,
            namespace=args.namespace,
            delay=args.delay,
            batch_size=args.batch_size,
            purge_on_start=args.purge,
        )
