"""Tests for the stored payload encoding."""

import json
import unittest

from crawlqueue.codec import FORMAT_VERSION, decode_item, encode_item
from crawlqueue.errors import DeserializationError, EncodingError
from crawlqueue.models import WorkItem


class TestEncodeItem(unittest.TestCase):
    """Verify the envelope written for each item."""

    def test_envelope_is_versioned_json(self):
        """Encoded payloads are UTF-8 JSON carrying version and kind."""
        payload = encode_item(WorkItem(url="https://example.com/a", meta={"depth": 2}))
        envelope = json.loads(payload.decode("utf-8"))
        self.assertEqual(envelope["v"], FORMAT_VERSION)
        self.assertEqual(envelope["kind"], "work_item")
        self.assertEqual(envelope["item"]["meta"], {"depth": 2})

    def test_item_survives_storage_encoding(self):
        """Every field is restored by decode_item."""
        item = WorkItem(
            url="https://example.com/search",
            method="POST",
            params={"q": "crawl"},
            meta={"depth": 1, "tags": ["a", "b"], "note": "ünïcode"},
            key="/search",
        )
        self.assertEqual(decode_item(encode_item(item)), item)

    def test_unserializable_meta_raises(self):
        """Objects JSON cannot represent are rejected at encode time."""
        item = WorkItem(url="https://example.com/a", meta={"handle": object()})
        with self.assertRaises(EncodingError):
            encode_item(item)
        with self.assertRaises(ValueError):
            encode_item(item)

    def test_values_json_would_reshape_are_rejected(self):
        """Int keys, tuples and NaN would not come back as written."""
        bad_items = (
            WorkItem(url="https://example.com/a", params={1: "x"}),
            WorkItem(url="https://example.com/a", meta={"span": (1, 2)}),
            WorkItem(url="https://example.com/a", meta={"nested": {"ids": {3, 4}}}),
            WorkItem(url="https://example.com/a", meta={"score": float("nan")}),
        )
        for item in bad_items:
            with self.assertRaises(EncodingError):
                encode_item(item)

    def test_empty_method_is_kept(self):
        """An empty method is stored as written, not replaced with GET."""
        item = WorkItem(url="https://example.com/a", method="")
        self.assertEqual(decode_item(encode_item(item)).method, "")

    def test_non_string_fields_are_rejected(self):
        for item in (
            WorkItem(url="https://example.com/a", method=None),
            WorkItem(url="https://example.com/a", key=7),
            WorkItem(url=""),
        ):
            with self.assertRaises(EncodingError):
                encode_item(item)


class TestDecodeItem(unittest.TestCase):
    """Verify that malformed payloads raise DeserializationError."""

    def _payload(self, envelope) -> bytes:
        return json.dumps(envelope).encode("utf-8")

    def test_invalid_json(self):
        with self.assertRaises(DeserializationError):
            decode_item(b"O:7:\"Request\":0:{}")

    def test_invalid_utf8(self):
        with self.assertRaises(DeserializationError):
            decode_item(b"\xff\xfe\x00")

    def test_unknown_version(self):
        """Payloads from a future format version are not guessed at."""
        payload = self._payload({"v": 99, "kind": "work_item", "item": {"url": "https://example.com/"}})
        with self.assertRaises(DeserializationError) as ctx:
            decode_item(payload)
        self.assertIn("version", str(ctx.exception))

    def test_unknown_kind(self):
        payload = self._payload({"v": FORMAT_VERSION, "kind": "response", "item": {}})
        with self.assertRaises(DeserializationError):
            decode_item(payload)

    def test_missing_url(self):
        payload = self._payload({"v": FORMAT_VERSION, "kind": "work_item", "item": {"method": "GET"}})
        with self.assertRaises(DeserializationError):
            decode_item(payload)

    def test_non_object_envelope(self):
        with self.assertRaises(DeserializationError):
            decode_item(b"[1, 2, 3]")

    def test_non_object_item(self):
        """A well-formed envelope around a non-object item is rejected cleanly."""
        for item in ([1], "https://example.com/a", None):
            payload = self._payload({"v": FORMAT_VERSION, "kind": "work_item", "item": item})
            with self.assertRaises(DeserializationError):
                decode_item(payload)

    def test_mistyped_fields(self):
        for fields in (
            {"url": "https://example.com/a", "method": 5},
            {"url": "https://example.com/a", "key": ["a"]},
            {"url": "https://example.com/a", "params": [1]},
            {"url": "https://example.com/a", "meta": "x"},
        ):
            payload = self._payload({"v": FORMAT_VERSION, "kind": "work_item", "item": fields})
            with self.assertRaises(DeserializationError):
                decode_item(payload)

    def test_accepts_text_payload(self):
        """Payloads read back as str decode the same as bytes."""
        payload = encode_item(WorkItem(url="https://example.com/a")).decode("utf-8")
        self.assertEqual(decode_item(payload).url, "https://example.com/a")


if __name__ == "__main__":
    unittest.main()
