from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urldefrag, urlencode, urlsplit

from requests.exceptions import RequestException
from requests.models import PreparedRequest
from requests.utils import requote_uri

from .errors import EncodingError


def normalize_url(url: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Return the canonical form of a URL used as a deduplication key.

    Absolute URLs get the same preparation requests applies before sending:
    scheme and host lower-cased, host IDNA-encoded, path re-quoted, an empty
    path becomes "/", and params are appended to the query string. URLs
    with neither scheme nor host are keyed by their re-quoted path and
    query. The fragment is dropped in both cases since it never reaches the
    server."""
    if not url:
        raise EncodingError("cannot derive a key from an empty url")
    parts = urlsplit(url)
    if not parts.scheme and not parts.netloc:
        return _normalize_path(url, params)
    prepared = PreparedRequest()
    try:
        prepared.prepare_url(url, params or None)
    except RequestException as exc:
        raise EncodingError(f"cannot derive a key from {url!r}: {exc}") from exc
    return urldefrag(prepared.url)[0]


def _normalize_path(url: str, params: Optional[Dict[str, Any]]) -> str:
    path = urldefrag(url)[0] or "/"
    if params:
        separator = "&" if "?" in path else "?"
        path = f"{path}{separator}{urlencode(params, doseq=True)}"
    return requote_uri(path)


@dataclass(frozen=True)
class WorkItem:
    url: str
    method: str = "GET"
    params: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    key: Optional[str] = None

    @property
    def logical_key(self) -> str:
        """Explicit key when one was given, otherwise the normalized URL."""
        if self.key is not None:
            return self.key
        return normalize_url(self.url, self.params)


@dataclass(frozen=True)
class DeliveryRecord:
    payload: bytes
    key: str
    taken: bool
    inserted_at: float
