"""S3 sink: serialises the blocks to JSON and puts them under a dated key.

boto3 is synchronous; ``put_object`` runs in a worker thread so the event
loop is not blocked.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from contentsync.config import StorageConfig
from contentsync.models import ContentBlock
from contentsync.storage._keys import object_key, serialize_blocks
from contentsync.sync.errors import UploadError

log = structlog.get_logger(__name__)


def create_s3_client(config: StorageConfig) -> Any:
    """Build a boto3 S3 client honouring a custom endpoint and path-style addressing."""
    import boto3
    from botocore.config import Config

    boto_config = Config(s3={"addressing_style": "path"}) if config.use_path_style else None
    return boto3.client(
        "s3",
        region_name=config.region or None,
        endpoint_url=config.endpoint_url or None,
        config=boto_config,
    )


class S3Uploader:
    """Puts content blocks at ``<prefix>/<YYYY-MM-DD>/content-block.json``."""

    def __init__(
        self,
        bucket: str,
        path_prefix: str,
        client: Any,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not bucket.strip("/"):
            raise ValueError("S3 bucket must not be empty")
        self._bucket = bucket.strip("/")
        self._prefix = path_prefix.strip("/")
        self._client = client
        self._clock = clock

    async def upload_content_blocks(self, blocks: list[ContentBlock]) -> str:
        now = self._clock() if self._clock else None
        key = object_key(self._prefix, now)
        body = serialize_blocks(blocks)

        def _put_object() -> None:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=body,
                ContentType="application/json",
            )

        try:
            await asyncio.to_thread(_put_object)
        except (BotoCoreError, ClientError) as exc:
            raise UploadError(f"failed to put s3://{self._bucket}/{key}: {exc}") from exc

        location = f"s3://{self._bucket}/{key}"
        log.info("content_blocks_uploaded", backend="s3", location=location, blocks=len(blocks))
        return location
