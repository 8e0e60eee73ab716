"""Tests for setup_logging."""

import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from cloudadmin.logging.formatters import ConsoleFormatter, JSONFormatter
from cloudadmin.logging.setup import NOISY_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_console_handler_uses_console_formatter(self):
        setup_logging(level=logging.WARNING)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, ConsoleFormatter)
        assert handlers[0].level == logging.WARNING

    def test_json_console(self):
        setup_logging(json_format=True)

        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("CLOUDADMIN_LOG_LEVEL", "debug")

        setup_logging()

        assert logging.getLogger().handlers[0].level == logging.DEBUG

    def test_unknown_environment_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("CLOUDADMIN_LOG_LEVEL", "chatty")

        setup_logging()

        assert logging.getLogger().handlers[0].level == logging.INFO

    def test_rotating_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "cloudadmin.log"

        setup_logging(log_file=log_file)

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, TimedRotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert isinstance(file_handlers[0].formatter, JSONFormatter)
        assert log_file.parent.exists()

    def test_suppresses_noisy_loggers(self):
        setup_logging()

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_returns_named_logger(self):
        assert setup_logging(name="cloudadmin.test").name == "cloudadmin.test"
