"""Storage sinks for synced content blocks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contentsync.storage.local import LocalUploader
from contentsync.storage.s3 import S3Uploader, create_s3_client

if TYPE_CHECKING:
    from contentsync.config import AppConfig
    from contentsync.ports import ContentUploader

__all__ = ["LocalUploader", "S3Uploader", "create_uploader"]


def create_uploader(config: AppConfig) -> ContentUploader:
    """Return the sink selected by ``storage.backend``."""
    if config.storage.backend == "s3":
        return S3Uploader(
            config.storage.bucket,
            config.storage.path_prefix,
            create_s3_client(config.storage),
        )
    return LocalUploader(config.data_dir)
