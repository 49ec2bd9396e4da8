"""Tests for the structured logging configuration."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
import structlog

from contentsync.logging import setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    """Reset logging state between tests."""
    yield
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    structlog.reset_defaults()


def test_setup_creates_log_dir_and_files(tmp_path: Path):
    log_dir = tmp_path / "logs"
    setup_logging(log_level="info", log_dir=log_dir)

    structlog.get_logger("contentsync.test").info("hello")

    assert (log_dir / "contentsync.log").exists()
    assert (log_dir / "sync.log").exists()


def test_main_log_human_readable(tmp_path: Path):
    log_dir = tmp_path / "logs"
    setup_logging(log_level="info", log_dir=log_dir)

    structlog.get_logger("contentsync.cli").info("test_event", key="value")

    content = (log_dir / "contentsync.log").read_text()
    assert "test_event" in content
    assert "key=value" in content


def test_sync_log_json_only_sync_events(tmp_path: Path):
    log_dir = tmp_path / "logs"
    setup_logging(log_level="info", log_dir=log_dir)

    structlog.get_logger("contentsync.sync.salesforce").warning(
        "page_fetch_failed", page=2, error="Error fetching page 2: boom"
    )
    structlog.get_logger("contentsync.storage.local").info("content_blocks_uploaded")

    lines = (log_dir / "sync.log").read_text().strip().splitlines()
    assert len(lines) == 1
    data = json.loads(lines[0])
    assert data["event"] == "page_fetch_failed"
    assert data["page"] == 2
    assert data["level"] == "warning"
    assert data["logger"] == "contentsync.sync.salesforce"
    assert "timestamp" in data


def test_log_level_filters(tmp_path: Path):
    log_dir = tmp_path / "logs"
    setup_logging(log_level="warning", log_dir=log_dir)

    log = structlog.get_logger("contentsync.sync.engine")
    log.info("quiet")
    log.error("loud")

    content = (log_dir / "contentsync.log").read_text()
    assert "quiet" not in content
    assert "loud" in content


def test_rotating_handlers(tmp_path: Path):
    setup_logging(log_dir=tmp_path / "logs")

    handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 2
    assert all(h.maxBytes == 10 * 1024 * 1024 for h in handlers)
    assert all(h.backupCount == 5 for h in handlers)


def test_no_handlers_without_log_dir():
    setup_logging()
    assert logging.getLogger().handlers == []


def test_console_handler():
    setup_logging(console=True)
    [handler] = logging.getLogger().handlers
    assert isinstance(handler, logging.StreamHandler)


def test_noisy_loggers_suppressed():
    setup_logging(log_level="debug")
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("botocore").level == logging.WARNING


def test_sync_log_includes_traceback(tmp_path: Path):
    log_dir = tmp_path / "logs"
    setup_logging(log_dir=log_dir)

    try:
        raise RuntimeError("upload exploded")
    except RuntimeError:
        structlog.get_logger("contentsync.sync.engine").exception("sync_failed")

    data = json.loads((log_dir / "sync.log").read_text().strip())
    assert data["event"] == "sync_failed"
    assert "RuntimeError: upload exploded" in data["exception"]


def test_unknown_level_falls_back_to_info():
    setup_logging(log_level="chatty")
    assert logging.getLogger().level == logging.INFO
