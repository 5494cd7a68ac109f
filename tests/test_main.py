"""Tests for the command-line demo."""

import contextlib
import io
import os
import tempfile
import unittest

from crawlqueue.config import QueueConfig
from main import _load_urls, build_parser, run_demo


class TestLoadUrls(unittest.TestCase):
    """Verify URL list loading."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "urls.txt")

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, text):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_skips_blank_and_comment_lines(self):
        self._write("https://example.com/a\n\n# note\nhttps://example.com/b\n")
        self.assertEqual(_load_urls(self.path), ["https://example.com/a", "https://example.com/b"])

    def test_respects_limit(self):
        self._write("\n".join(f"https://example.com/{i}" for i in range(5)))
        self.assertEqual(len(_load_urls(self.path, limit=2)), 2)

    def test_empty_file_raises(self):
        self._write("\n\n")
        with self.assertRaises(ValueError):
            _load_urls(self.path)


class TestRunDemo(unittest.TestCase):
    """Verify the end-to-end demo against both backends."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "urls.txt")
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("https://example.com/a\nhttps://example.com/b\nhttps://example.com/a\nhttps://example.com/c\n")

    def tearDown(self):
        self._tmp.cleanup()

    def _run(self, config):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            handled = run_demo(config, url_path=self.path, url_limit=100)
        return handled, out.getvalue()

    def test_memory_backend_keeps_duplicates(self):
        handled, output = self._run(QueueConfig(backend="memory", batch_size=2))
        self.assertEqual(handled, 4)
        self.assertIn("batch=2 size=2", output)
        self.assertIn("DONE: batches=2 items=4", output)

    def test_sqlite_backend_deduplicates(self):
        config = QueueConfig(backend="sqlite", storage_dir=self._tmp.name, namespace="demo", batch_size=2)
        handled, output = self._run(config)
        self.assertEqual(handled, 3)
        self.assertIn("batch=1 size=2 items=[https://example.com/a, https://example.com/b]", output)

    def test_sqlite_rerun_needs_purge(self):
        """A second run sees every URL as already scheduled unless purged."""
        config = QueueConfig(backend="sqlite", storage_dir=self._tmp.name, namespace="demo")
        self._run(config)
        handled, _ = self._run(config)
        self.assertEqual(handled, 0)

        purged = QueueConfig(backend="sqlite", storage_dir=self._tmp.name, namespace="demo", purge_on_start=True)
        handled, _ = self._run(purged)
        self.assertEqual(handled, 3)


class TestParser(unittest.TestCase):
    def test_parses_queue_options(self):
        args = build_parser().parse_args(["--run-demo", "--backend", "sqlite", "--delay", "1.5", "--purge"])
        self.assertTrue(args.run_demo)
        self.assertEqual(args.backend, "sqlite")
        self.assertEqual(args.delay, 1.5)
        self.assertTrue(args.purge)
        self.assertEqual(args.batch_size, 25)


if __name__ == "__main__":
    unittest.main()
