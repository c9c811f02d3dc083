"""Tests for logging bootstrap behavior."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
import unittest

import structlog

from event_pool.logging_utils import configure_logging
from event_pool.pool import DUMP_FOOTER, DUMP_HEADER, EventPool


class ConfigureLoggingTests(unittest.TestCase):
    """Validate configure_logging() handler setup behavior."""

    def setUp(self) -> None:
        # Preserve root logger state so tests do not pollute each other.
        root = logging.getLogger()
        self._original_level = root.level
        self._original_handlers = list(root.handlers)

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers:
            if handler not in self._original_handlers:
                handler.close()
        root.setLevel(self._original_level)
        root.handlers.clear()
        root.handlers.extend(self._original_handlers)
        EventPool.remove_all()

    def _stream_handlers(self) -> list[logging.Handler]:
        return [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]

    def test_configure_logging_adds_stderr_handler(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        self.assertEqual(len(self._stream_handlers()), 1)

    def test_structured_mode_uses_structlog_formatter(self) -> None:
        configure_logging({"level": "DEBUG", "structured": True, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertTrue(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_plain_formatter_when_not_structured(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        formatters = [h.formatter for h in logging.getLogger().handlers]
        self.assertFalse(
            any(isinstance(f, structlog.stdlib.ProcessorFormatter) for f in formatters)
        )

    def test_sets_root_level(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging({"level": "CHATTY", "structured": False})
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_file_handler_receives_pool_events(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "nested" / "pool.log"
            configure_logging(
                {
                    "level": "DEBUG",
                    "structured": True,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )
            file_handlers = [
                h
                for h in logging.getLogger().handlers
                if isinstance(h, logging.FileHandler)
            ]
            self.assertEqual(len(file_handlers), 1)

            def handler() -> None:
                return None

            EventPool.subscribe("logged", handler)
            for h in file_handlers:
                h.flush()
            contents = log_path.read_text(encoding="utf-8")
            self.assertIn("pool.subscribe", contents)
            self.assertIn('"event_name":"logged"', contents)

    def test_structured_debug_dump_keeps_listing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_path = Path(tmp) / "pool.log"
            configure_logging(
                {
                    "level": "INFO",
                    "structured": True,
                    "log_to_file": True,
                    "log_file_path": str(log_path),
                }
            )

            def dumped_handler() -> None:
                return None

            EventPool.subscribe("dumped", dumped_handler)
            EventPool.debug_dump()
            for h in logging.getLogger().handlers:
                h.flush()
            contents = log_path.read_text(encoding="utf-8")
            self.assertIn('"event":"pool.debug_dump"', contents)
            self.assertIn(DUMP_HEADER, contents)
            self.assertIn(DUMP_FOOTER, contents)
            self.assertIn("event: dumped", contents)
            self.assertIn("dumped_handler", contents)

    def test_stderr_handler_filters_to_event_pool(self) -> None:
        configure_logging({"level": "DEBUG", "structured": False, "log_to_file": False})
        handler = self._stream_handlers()[0]
        pool_record = logging.LogRecord(
            name="event_pool.pool",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="ok",
            args=(),
            exc_info=None,
        )
        other_record = logging.LogRecord(
            name="event_pool_other",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="noise",
            args=(),
            exc_info=None,
        )
        self.assertTrue(handler.filter(pool_record))
        self.assertFalse(handler.filter(other_record))


if __name__ == "__main__":
    unittest.main()
