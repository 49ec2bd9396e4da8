"""Local-disk sink: writes each run's blocks as one JSON file per day."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import structlog

from contentsync.models import ContentBlock
from contentsync.storage._keys import object_key, serialize_blocks
from contentsync.sync.errors import UploadError

log = structlog.get_logger(__name__)


class LocalUploader:
    """Stores content blocks under ``<directory>/<YYYY-MM-DD>/content-block.json``.

    A second run on the same day overwrites the first one's file.
    """

    def __init__(self, directory: Path, *, clock: Callable[[], datetime] | None = None) -> None:
        self._directory = directory
        self._clock = clock

    async def upload_content_blocks(self, blocks: list[ContentBlock]) -> str:
        now = self._clock() if self._clock else None
        path = self._directory / object_key("", now)
        data = serialize_blocks(blocks)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            raise UploadError(f"failed to write {path}: {exc}") from exc
        log.info("content_blocks_uploaded", backend="local", path=str(path), blocks=len(blocks))
        return str(path)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_bytes(data)
        tmp.replace(path)
