from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOGGER_NAME = "crawlqueue"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def init_logger(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """Configure root logging once and return the package logger.

    Always logs to stdout; also writes to a rotating file when log_file is
    given. Python warnings (e.g. skipped payloads) are routed into logging."""
    root = logging.getLogger()
    if getattr(root, "_crawlqueue_inited", False):
        return logging.getLogger(LOGGER_NAME)

    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.captureWarnings(True)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    root._crawlqueue_inited = True  # type: ignore[attr-defined]
    logger = logging.getLogger(LOGGER_NAME)
    logger.debug("Logger initialized")
    return logger
