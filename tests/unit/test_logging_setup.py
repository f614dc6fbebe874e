"""
Unit tests for loguru sink configuration.

Run: pytest tests/unit/test_logging_setup.py -v
"""

import sys

from loguru import logger

from config import Settings
from spacing.logging_setup import configure_logging


class TestConfigureLogging:
    def teardown_method(self):
        logger.remove()
        logger.add(sys.stderr)

    def test_log_file_sink(self, tmp_path):
        log_file = tmp_path / "spacing.log"
        configure_logging(Settings(_env_file=None, log_file=str(log_file)))

        logger.info("planned deck-1")
        logger.debug("hidden at INFO")
        logger.remove()

        content = log_file.read_text()
        assert "planned deck-1" in content
        assert "hidden at INFO" not in content

    def test_level_override(self, tmp_path):
        log_file = tmp_path / "spacing.log"
        configure_logging(Settings(_env_file=None, log_file=str(log_file)), level="DEBUG")

        logger.debug("visible at DEBUG")
        logger.remove()

        assert "visible at DEBUG" in log_file.read_text()
