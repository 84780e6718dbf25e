"""Tests for logging configuration."""

import logging

import pytest
from rich.logging import RichHandler

from tui_gantt.logging_config import LOG_LEVEL_ENV, configure_logging, resolve_level


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    pkg_logger = logging.getLogger("tui_gantt")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.setLevel(logging.NOTSET)


class TestResolveLevel:
    def test_argument_wins(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "ERROR")
        assert resolve_level("debug") == logging.DEBUG

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "info")
        assert resolve_level() == logging.INFO

    def test_default(self, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        assert resolve_level() == logging.WARNING

    def test_unknown_name(self):
        assert resolve_level("chatty") == logging.WARNING


class TestConfigureLogging:
    def test_rich_handler_by_default(self):
        configure_logging("info")
        handlers = logging.getLogger("tui_gantt").handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RichHandler)

    def test_repeated_calls_do_not_stack(self):
        configure_logging("info")
        configure_logging("debug")
        pkg_logger = logging.getLogger("tui_gantt")
        assert len(pkg_logger.handlers) == 1
        assert pkg_logger.level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / ".tui-gantt" / "tui-gantt.log"
        configure_logging("info", log_file=log_file)
        logging.getLogger("tui_gantt.scheduler").info("created task %s", "1.2")
        for handler in logging.getLogger("tui_gantt").handlers:
            handler.flush()
        text = log_file.read_text(encoding="utf-8")
        assert "INFO" in text
        assert "tui_gantt.scheduler: created task 1.2" in text
