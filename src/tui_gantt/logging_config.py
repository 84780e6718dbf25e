"""
Logging configuration.

- Terminal: rich handler on stderr
- File: plain readable lines (used by the TUI so the screen stays clean)
- Log level: --log-level option or TUI_GANTT_LOG_LEVEL env variable
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "TUI_GANTT_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"
LOG_FILE_NAME = "tui-gantt.log"


class ReadableFormatter(logging.Formatter):
    """One line per record: time, level, logger, message."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + self.formatException(record.exc_info)
        return base


def resolve_level(level: str | None = None) -> int:
    """Level name from the argument, then the environment, then WARNING."""
    level_name = level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LEVEL
    return getattr(logging, level_name.upper(), logging.WARNING)


def configure_logging(level: str | None = None, log_file: Path | None = None) -> int:
    """Install a single handler on the package logger.

    With *log_file* records go to that file; otherwise they go to stderr
    through rich. Returns the numeric level in effect.
    """
    numeric = resolve_level(level)
    pkg_logger = logging.getLogger("tui_gantt")
    # Remove existing handlers to prevent duplicates on repeated calls
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(ReadableFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
    handler.setLevel(numeric)
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(numeric)

    pkg_logger.debug("logging configured: level=%s target=%s",
                     logging.getLevelName(numeric), log_file or "stderr")
    return numeric
