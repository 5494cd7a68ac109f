"""Versioned payload encoding for stored work items.

A stored payload is a UTF-8 JSON envelope::

    {"v": 1, "kind": "work_item",
     "item": {"url": ..., "method": ..., "params": {...}, "meta": {...}, "key": ...}}

The envelope does not depend on any in-process object layout, so payloads
written by one process version can be read by another. Readers reject
versions and kinds they do not know instead of guessing.
"""
from __future__ import annotations

import json
from typing import Any

from .errors import DeserializationError, EncodingError
from .models import WorkItem

FORMAT_VERSION = 1
KIND_WORK_ITEM = "work_item"


def _check_native(value: Any, where: str) -> None:
    """Reject values JSON would silently reshape (tuples, non-str keys, sets)."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if type(value) is list:
        for index, entry in enumerate(value):
            _check_native(entry, f"{where}[{index}]")
        return
    if type(value) is dict:
        for key, entry in value.items():
            if not isinstance(key, str):
                raise EncodingError(f"{where} has a non-string key {key!r}")
            _check_native(entry, f"{where}.{key}")
        return
    raise EncodingError(f"{where} holds a {type(value).__name__}, which does not survive JSON")


def encode_item(item: WorkItem) -> bytes:
    if not isinstance(item.url, str) or not item.url:
        raise EncodingError("work item url must be a non-empty string")
    if not isinstance(item.method, str):
        raise EncodingError(f"work item method must be a string, got {item.method!r}")
    if item.key is not None and not isinstance(item.key, str):
        raise EncodingError(f"work item key must be a string, got {item.key!r}")
    _check_native(item.params, "params")
    _check_native(item.meta, "meta")
    if type(item.params) is not dict or type(item.meta) is not dict:
        raise EncodingError("work item params and meta must be dicts")

    envelope = {
        "v": FORMAT_VERSION,
        "kind": KIND_WORK_ITEM,
        "item": {
            "url": item.url,
            "method": item.method,
            "params": item.params,
            "meta": item.meta,
            "key": item.key,
        },
    }
    try:
        return json.dumps(envelope, ensure_ascii=False, sort_keys=True, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"cannot encode work item for {item.url!r}: {exc}") from exc


def decode_item(payload: bytes) -> WorkItem:
    try:
        if isinstance(payload, (bytes, bytearray, memoryview)):
            payload = bytes(payload).decode("utf-8")
        envelope = json.loads(payload)
    except (UnicodeDecodeError, ValueError) as exc:
        raise DeserializationError(f"payload is not valid JSON: {exc}") from exc

    if not isinstance(envelope, dict):
        raise DeserializationError("payload envelope must be an object")
    version = envelope.get("v")
    if version != FORMAT_VERSION:
        raise DeserializationError(f"unsupported payload version: {version!r}")
    kind = envelope.get("kind")
    if kind != KIND_WORK_ITEM:
        raise DeserializationError(f"unsupported payload kind: {kind!r}")

    data = envelope.get("item")
    if not isinstance(data, dict):
        raise DeserializationError("payload item must be an object")
    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise DeserializationError("payload is missing the item url")
    method = data.get("method", "GET")
    if not isinstance(method, str):
        raise DeserializationError(f"item method must be a string, got {method!r}")
    key = data.get("key")
    if key is not None and not isinstance(key, str):
        raise DeserializationError(f"item key must be a string, got {key!r}")
    params = data.get("params", {})
    meta = data.get("meta", {})
    if not isinstance(params, dict) or not isinstance(meta, dict):
        raise DeserializationError("item params and meta must be objects")

    return WorkItem(url=url, method=method, params=params, meta=meta, key=key)
