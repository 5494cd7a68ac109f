from __future__ import annotations

import argparse
import logging
import sys
from typing import List

from crawlqueue.config import BACKENDS, BACKEND_MEMORY, DEFAULT_STORAGE_DIR, QueueConfig
from crawlqueue.errors import QueueError
from crawlqueue.factory import SchedulerFactory
from crawlqueue.log import init_logger
from crawlqueue.models import WorkItem
from crawlqueue.scheduler import DEFAULT_BATCH_SIZE

DEFAULT_URL_LIST_PATH = "urls.txt"

logger = logging.getLogger("crawlqueue.main")


def _load_urls(path: str, limit: int = 100) -> List[str]:
    urls: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            url = line.strip()
            if not url or url.startswith("#"):
                continue
            urls.append(url)
            if len(urls) >= limit:
                break
    if not urls:
        raise ValueError(f"No URLs found in {path}")
    return urls


def run_demo(config: QueueConfig, url_path: str, url_limit: int) -> int:
    """Schedule the URLs from url_path, then drain the queue batch by batch."""
    pipeline = SchedulerFactory().create_pipeline(config)
    scheduler = pipeline.scheduler
    try:
        pipeline.start()
        for url in _load_urls(url_path, limit=url_limit):
            pipeline.schedule(WorkItem(url=url))
        logger.info("Scheduled URLs, %d pending in namespace %r", scheduler.pending_count(), scheduler.namespace)

        batches = 0

        def _print_batch(batch: List[WorkItem]) -> None:
            nonlocal batches
            batches += 1
            keys = ", ".join(item.logical_key for item in batch)
            print(f"batch={batches} size={len(batch)} items=[{keys}]")

        handled = pipeline.drain(lambda item: None, on_batch=_print_batch)
    finally:
        scheduler.close()

    print(f"\nDONE: batches={batches} items={handled} backend={config.backend}")
    return handled


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Throttled, deduplicating crawl request queue")
    parser.add_argument("--run-demo", action="store_true", help="Schedule URLs from a file and drain them")

    parser.add_argument("--urls", default=DEFAULT_URL_LIST_PATH, help="Path to URL list, one per line")
    parser.add_argument("--limit", type=int, default=100, help="Max number of URLs to load")

    parser.add_argument("--backend", choices=BACKENDS, default=BACKEND_MEMORY, help="Queue backend")
    parser.add_argument("--storage-dir", default=DEFAULT_STORAGE_DIR, help="Directory holding SQLite partitions")
    parser.add_argument("--namespace", default="", help="Queue namespace (sanitized to [a-z0-9])")
    parser.add_argument("--delay", type=float, default=0, help="Seconds between batches")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE, help="Items per batch")
    parser.add_argument("--purge", action="store_true", help="Purge the queue before scheduling")

    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", default=None, help="Optional rotating log file")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    init_logger(args.log_level, args.log_file)

    if not args.run_demo:
        print("Nothing to do. Use --run-demo to run the demo.")
        return

    try:
        config = QueueConfig.from_args(args)
        run_demo(config, url_path=args.urls, url_limit=args.limit)
    except (QueueError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
