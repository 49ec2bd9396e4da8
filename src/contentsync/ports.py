"""Boundaries between the sync engine and the outside world."""

from __future__ import annotations

from typing import Protocol

from contentsync.models import ContentBlock, ContentBlocksRequest, FetchResult


class ContentFetcher(Protocol):
    """Fetches content blocks from a remote source (Salesforce, as of now)."""

    async def __aenter__(self) -> ContentFetcher: ...

    async def __aexit__(self, *exc: object) -> None: ...

    async def fetch_content_blocks(self, request: ContentBlocksRequest) -> list[ContentBlock]: ...

    async def fetch_all(self, request: ContentBlocksRequest) -> FetchResult: ...


class ContentUploader(Protocol):
    """Stores a full set of content blocks in one call (local disk, S3...)."""

    async def upload_content_blocks(self, blocks: list[ContentBlock]) -> str: ...
