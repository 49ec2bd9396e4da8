"""Object naming shared by the storage backends."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from contentsync.models import ContentBlock

OBJECT_NAME = "content-block.json"


def object_key(prefix: str, now: datetime | None = None) -> str:
    """Return ``<prefix>/<YYYY-MM-DD>/content-block.json`` (prefix optional)."""
    day = (now or datetime.now(UTC)).strftime("%Y-%m-%d")
    parts = [prefix.strip("/"), day, OBJECT_NAME]
    return "/".join(part for part in parts if part)


def serialize_blocks(blocks: list[ContentBlock]) -> bytes:
    return json.dumps([block.model_dump() for block in blocks], ensure_ascii=False).encode("utf-8")
