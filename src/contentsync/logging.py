"""Structured logging for contentsync.

Every event goes through structlog and is handed to stdlib ``logging``, where
the handlers decide how it looks:

- ``contentsync.log`` — key=value lines, every event
- ``sync.log`` — one JSON object per line, ``contentsync.sync.*`` only, so
  page failures and run outcomes can be grepped or shipped on their own
- stderr — key=value lines, when running in the foreground
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

_ROTATE_BYTES = 10 * 1024 * 1024
_ROTATE_KEEP = 5
_SYNC_LOGGER = "contentsync.sync"
_QUIET_LOGGERS = ("httpx", "httpcore", "boto3", "botocore", "s3transfer", "urllib3")

_pre_chain: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _formatter(renderer: structlog.types.Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _rotating(path: Path, formatter: logging.Formatter, only: str | None = None) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=_ROTATE_BYTES, backupCount=_ROTATE_KEEP, encoding="utf-8")
    handler.setFormatter(formatter)
    if only:
        handler.addFilter(logging.Filter(only))
    return handler


def setup_logging(log_level: str = "info", log_dir: Path | None = None, *, console: bool = False) -> None:
    """Route structlog through stdlib logging.

    With neither *log_dir* nor *console* no handler is installed, which keeps
    tests quiet.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[*_pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    text = _formatter(structlog.dev.ConsoleRenderer(colors=False))
    handlers: list[logging.Handler] = []
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating(log_dir / "contentsync.log", text))
        handlers.append(_rotating(log_dir / "sync.log", _formatter(structlog.processors.JSONRenderer()), _SYNC_LOGGER))
    if console:
        stderr = logging.StreamHandler(sys.stderr)
        stderr.setFormatter(text)
        handlers.append(stderr)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
