"""Core sync engine: fetch every content block, then hand them to the sink."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from contentsync.models import ContentBlocksRequest, SyncRun
from contentsync.sync.errors import SyncError, SyncInProgressError
from contentsync.sync.token import TokenCache

if TYPE_CHECKING:
    from collections.abc import Callable

    from contentsync.config import AppConfig
    from contentsync.ports import ContentFetcher, ContentUploader

log = structlog.get_logger(__name__)


class SyncState(StrEnum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


class SyncEngine:
    """Runs one fetch-and-upload cycle at a time.

    The engine owns the :class:`TokenCache` so a credential outlives the
    per-run fetcher and is reused by the next run while it is still fresh.
    """

    def __init__(
        self,
        config: AppConfig,
        uploader: ContentUploader,
        *,
        token_cache: TokenCache | None = None,
        fetcher_factory: Callable[[AppConfig, TokenCache], ContentFetcher] | None = None,
    ) -> None:
        self._config = config
        self._uploader = uploader
        self._tokens = token_cache or TokenCache(config.salesforce)
        self._fetcher_factory = fetcher_factory
        self._state = SyncState.IDLE
        self._lock = asyncio.Lock()
        self._last_run: SyncRun | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._lock.locked()

    @property
    def last_run(self) -> SyncRun | None:
        return self._last_run

    @property
    def token_cache(self) -> TokenCache:
        return self._tokens

    def get_status(self) -> dict:
        return {
            "state": self._state.value,
            "last_run": self._last_run.to_summary() if self._last_run else None,
        }

    def default_request(self) -> ContentBlocksRequest:
        return ContentBlocksRequest(page_size=self._config.sync.page_size)

    async def run_sync(self, request: ContentBlocksRequest | None = None) -> SyncRun:
        """Run a sync cycle. Raises if already syncing."""
        if self._lock.locked():
            raise SyncInProgressError()

        async with self._lock:
            self._state = SyncState.SYNCING
            run = SyncRun(started_at=datetime.now(UTC))
            self._last_run = run
            try:
                await self._do_sync(run, request or self.default_request())
            except asyncio.CancelledError:
                self._finish(run, "cancelled", "sync cancelled")
                self._state = SyncState.IDLE
                log.warning("sync_cancelled")
                raise
            except Exception as exc:
                self._finish(run, "failed", str(exc))
                self._state = SyncState.ERROR
                log.error("sync_failed", error=str(exc))
                raise
            self._state = SyncState.IDLE
            return run

    async def _do_sync(self, run: SyncRun, request: ContentBlocksRequest) -> None:
        log.info("sync_start", page_size=request.page_size)

        try:
            async with self._create_fetcher() as fetcher:
                result = await fetcher.fetch_all(request)
        except Exception as exc:
            raise SyncError(f"failed to fetch content blocks: {exc}") from exc

        run.blocks = len(result.blocks)
        run.pages = result.total_pages
        run.failed_pages = sorted(f.page for f in result.failures)

        max_ratio = self._config.sync.max_failed_page_ratio
        if max_ratio is not None and result.failed_ratio > max_ratio:
            raise SyncError(
                f"too many failed pages: {len(result.failures)} of {result.total_pages} "
                f"(limit {max_ratio:.0%})"
            )

        try:
            location = await self._uploader.upload_content_blocks(result.blocks)
        except Exception as exc:
            raise SyncError(f"failed to upload content blocks: {exc}") from exc

        if result.failures:
            self._finish(run, "partial")
            log.warning(
                "sync_partial",
                blocks=run.blocks,
                pages=run.pages,
                failed_pages=run.failed_pages,
                location=location,
            )
        else:
            self._finish(run, "completed")
            log.info("sync_completed", blocks=run.blocks, pages=run.pages, location=location)

    @staticmethod
    def _finish(run: SyncRun, status: str, error: str | None = None) -> None:
        run.status = status
        run.error_message = error
        run.finished_at = datetime.now(UTC)

    def _create_fetcher(self) -> ContentFetcher:
        if self._fetcher_factory:
            return self._fetcher_factory(self._config, self._tokens)
        from contentsync.sync.salesforce import SalesforceClient

        return SalesforceClient(
            self._config.salesforce,
            self._tokens,
            max_concurrency=self._config.sync.max_concurrency,
            timeout=self._config.sync.request_timeout,
        )
