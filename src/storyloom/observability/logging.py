"""Structured logging for storyloom.

Events are emitted through structlog onto the stdlib logging tree. The CLI
turns them into a rich console stream (``-v``/``-vv``) and, with
``--log-file``, a JSONL file that receives every event at DEBUG level.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from pathlib import Path

_configured = False
_file_handler: logging.FileHandler | None = None

_CONSOLE_LEVELS = {0: logging.WARNING, 1: logging.INFO}


class JSONLFileHandler(logging.FileHandler):
    """Append one JSON object per event.

    structlog hands over its event dict as ``record.msg``; its keys become
    top-level fields next to ``timestamp``, ``level``, ``logger`` and
    ``message``.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, object] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
            }
            if isinstance(record.msg, dict):
                fields = dict(record.msg)
                entry["message"] = fields.pop("event", "")
                entry.update(fields)
            else:
                entry["message"] = record.getMessage()
            if self.stream:
                self.stream.write(json.dumps(entry, default=str) + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


def configure_logging(verbosity: int = 0, log_file: Path | None = None) -> None:
    """Install the console handler and, optionally, the JSONL file handler.

    Args:
        verbosity: 0 shows warnings, 1 info, 2 or more debug.
        log_file: Append every event to this file as JSON lines.
    """
    global _configured

    close_file_logging()
    console_level = _CONSOLE_LEVELS.get(verbosity, logging.DEBUG)
    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            level=console_level,
            show_time=verbosity >= 1,
            show_path=verbosity >= 2,
            markup=False,
            rich_tracebacks=True,
        )
    ]
    if log_file is not None:
        handlers.append(_open_file_handler(log_file))

    # The root logger lets everything through when a file wants DEBUG;
    # the console handler applies its own level.
    root_level = logging.DEBUG if verbosity > 0 or log_file is not None else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    structlog.configure(
        processors=[structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=False,
    )
    _configured = True


def _open_file_handler(log_file: Path) -> logging.FileHandler:
    global _file_handler

    log_file.parent.mkdir(parents=True, exist_ok=True)
    _file_handler = JSONLFileHandler(str(log_file), mode="a", encoding="utf-8")
    _file_handler.setLevel(logging.DEBUG)
    return _file_handler


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger, configuring logging on first use."""
    if not _configured:
        configure_logging()
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def close_file_logging() -> None:
    """Close the JSONL handler, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
