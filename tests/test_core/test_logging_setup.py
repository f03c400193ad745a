"""Tests for logging setup."""

import json
import logging

import pytest
import structlog

from tpibox.core.logging import NOISY_LOGGERS, level_from_name, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    def test_console_handler_uses_dev_renderer(self, restore_root_logger):
        setup_logging(level=logging.INFO)

        assert restore_root_logger.level == logging.INFO
        assert len(restore_root_logger.handlers) == 1
        formatter = restore_root_logger.handlers[0].formatter
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        assert isinstance(formatter.processors[-1], structlog.dev.ConsoleRenderer)

    def test_file_handler_writes_json_lines(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "tpibox.log"

        setup_logging(level=logging.INFO, log_file=str(log_file))
        logging.getLogger("tpibox.test").info("node %d powered on", 2)
        for handler in restore_root_logger.handlers:
            handler.flush()

        record = json.loads(log_file.read_text().splitlines()[-1])
        assert record["event"] == "node 2 powered on"
        assert record["level"] == "info"

    def test_noisy_loggers_stay_at_warning(self, restore_root_logger):
        setup_logging(level=logging.DEBUG)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestLevelFromName:
    @pytest.mark.parametrize(
        "name,expected",
        [("debug", logging.DEBUG), (" Info ", logging.INFO), ("chatty", logging.WARNING)],
    )
    def test_names(self, name, expected):
        assert level_from_name(name) == expected
