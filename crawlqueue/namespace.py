from __future__ import annotations

import os
import re

DEFAULT_NAMESPACE = "default"
PARTITION_SUFFIX = ".sqlite3"

_DISALLOWED = re.compile(r"[^A-Za-z0-9]")


def sanitize_namespace(raw: str) -> str:
    """Strip everything outside ASCII letters and digits, then lower-case.

    Names that sanitize to nothing ("", "  ", "--") all land on the
    DEFAULT_NAMESPACE partition, which the literal name "default" shares."""
    cleaned = _DISALLOWED.sub("", raw or "").lower()
    return cleaned or DEFAULT_NAMESPACE


def partition_path(storage_dir: str, namespace: str) -> str:
    """Map a namespace to its SQLite file, one file per sanitized name."""
    return os.path.join(storage_dir, sanitize_namespace(namespace) + PARTITION_SUFFIX)
