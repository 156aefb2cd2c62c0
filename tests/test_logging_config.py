import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.config.logging_config import LOG_FORMAT, call_logger, configure_logging


class TestLoggingConfig(unittest.TestCase):
    def setUp(self):
        self.log_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.log_dir.cleanup)

    def tearDown(self):
        logger = logging.getLogger("ultravox_relay")
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()

    def test_configure_logging(self):
        logger = configure_logging("INFO", log_dir=self.log_dir.name)

        self.assertIsInstance(logger, logging.Logger)
        self.assertEqual(logger.name, "ultravox_relay")
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        console, rotating = logger.handlers
        self.assertIsInstance(console, logging.StreamHandler)
        self.assertEqual(console.formatter._fmt, LOG_FORMAT)
        self.assertIsInstance(rotating, RotatingFileHandler)
        self.assertEqual(Path(rotating.baseFilename).name, "ultravox_relay.log")
        self.assertEqual(rotating.maxBytes, 10 * 1024 * 1024)
        self.assertEqual(rotating.backupCount, 5)

    def test_level_name_is_case_insensitive(self):
        logger = configure_logging("debug", log_dir="")
        self.assertEqual(logger.level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self):
        logger = configure_logging("chatty", log_dir="")
        self.assertEqual(logger.level, logging.INFO)

    def test_empty_log_dir_disables_file(self):
        logger = configure_logging("INFO", log_dir="")
        self.assertEqual(len(logger.handlers), 1)
        self.assertNotIsInstance(logger.handlers[0], RotatingFileHandler)

    def test_reconfigure_replaces_handlers(self):
        configure_logging("INFO", log_dir=self.log_dir.name)
        logger = configure_logging("WARNING", log_dir=self.log_dir.name)

        self.assertEqual(len(logger.handlers), 2)
        self.assertEqual(logger.level, logging.WARNING)

    def test_call_logger_prefixes_call_id(self):
        logger = configure_logging("INFO", log_dir="")

        with self.assertLogs(logger, level="INFO") as captured:
            call_logger("abc-123").info("WebSocket connected to Ultravox")

        self.assertEqual(captured.records[0].getMessage(), "[abc-123] WebSocket connected to Ultravox")


if __name__ == "__main__":
    unittest.main()
