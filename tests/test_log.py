"""Tests for the logging bootstrap."""

import logging
import os
import tempfile
import unittest

from crawlqueue.log import LOGGER_NAME, init_logger


class TestInitLogger(unittest.TestCase):
    """Verify handlers are installed once and files are written."""

    def setUp(self):
        self._root = logging.getLogger()
        self._saved_handlers = list(self._root.handlers)
        self._saved_level = self._root.level
        self._tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        for handler in list(self._root.handlers):
            self._root.removeHandler(handler)
            if handler not in self._saved_handlers:
                handler.close()
        for handler in self._saved_handlers:
            self._root.addHandler(handler)
        self._root.setLevel(self._saved_level)
        if hasattr(self._root, "_crawlqueue_inited"):
            del self._root._crawlqueue_inited
        logging.captureWarnings(False)
        self._tmp.cleanup()

    def test_returns_package_logger(self):
        logger = init_logger("DEBUG")
        self.assertEqual(logger.name, LOGGER_NAME)
        self.assertEqual(self._root.level, logging.DEBUG)

    def test_second_call_keeps_handlers(self):
        init_logger("INFO")
        handlers = list(self._root.handlers)
        init_logger("DEBUG")
        self.assertEqual(self._root.handlers, handlers)

    def test_writes_to_log_file(self):
        path = os.path.join(self._tmp.name, "logs", "queue.log")
        logger = init_logger("INFO", log_file=path)
        logger.info("queue ready")
        for handler in self._root.handlers:
            handler.flush()
        with open(path, "r", encoding="utf-8") as f:
            self.assertIn("queue ready", f.read())


if __name__ == "__main__":
    unittest.main()
