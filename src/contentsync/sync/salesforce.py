"""Async Salesforce Marketing Cloud content client using httpx.

Endpoints:
- POST {auth_url}/v2/token (client_credentials, see :mod:`contentsync.sync.token`)
- POST {rest_instance_url}/asset/v1/content/assets/query (paged asset query)

Page 1 is fetched first because it is the only source of the total count;
the remaining pages are then fetched concurrently. A failure on page 1
aborts the fetch, a failure on any later page is logged and that page is
left out of the result.
"""

from __future__ import annotations

import asyncio
import contextlib

import httpx
import structlog
from pydantic import ValidationError

from contentsync.config import SalesforceConfig
from contentsync.models import ContentBlock, ContentBlocksRequest, Credential, FetchResult, PageFailure, PageResult
from contentsync.sync.errors import ContentFetchError, DecodeError, PageFetchFailedError, TransportError
from contentsync.sync.token import TokenCache

log = structlog.get_logger(__name__)

_QUERY_PATH = "/asset/v1/content/assets/query"
_DEFAULT_TIMEOUT = 10.0


async def fetch_page(
    http: httpx.AsyncClient,
    instance_url: str,
    access_token: str,
    request: ContentBlocksRequest,
) -> PageResult:
    """Fetch a single page of assets. No retries."""
    url = instance_url.rstrip("/") + _QUERY_PATH
    try:
        resp = await http.post(
            url,
            json=request.to_payload(),
            headers={"Authorization": f"Bearer {access_token}"},
        )
    except httpx.TransportError as exc:
        raise TransportError(f"failed to perform HTTP request: {exc}") from exc

    if not resp.is_success:
        raise PageFetchFailedError(request.page, resp.status_code)

    try:
        return PageResult.model_validate(resp.json())
    except (ValueError, ValidationError) as exc:
        raise DecodeError(f"failed to decode response body: {exc}") from exc


class SalesforceClient:
    """Fetches every content block matching a query, page by page.

    The :class:`TokenCache` is owned by whoever builds the client so that it
    survives across clients and runs; one is created when none is given.
    """

    def __init__(
        self,
        config: SalesforceConfig,
        token_cache: TokenCache | None = None,
        *,
        max_concurrency: int | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be positive")
        self._config = config
        self._tokens = token_cache or TokenCache(config)
        self._max_concurrency = max_concurrency
        self._timeout = timeout
        self._transport = _transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SalesforceClient:
        kw: dict = {"timeout": self._timeout}
        if self._transport is not None:
            kw["transport"] = self._transport
        self._client = httpx.AsyncClient(**kw)
        return self

    async def __aexit__(self, *exc: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def token_cache(self) -> TokenCache:
        return self._tokens

    # -- public API --

    async def fetch_access_token(self) -> Credential:
        assert self._client is not None  # noqa: S101
        return await self._tokens.get_or_refresh(self._client)

    async def fetch_content_blocks(self, request: ContentBlocksRequest) -> list[ContentBlock]:
        """Fetch all content blocks for *request*. Order across pages is not defined."""
        result = await self.fetch_all(request)
        return result.blocks

    async def fetch_all(self, request: ContentBlocksRequest) -> FetchResult:
        """Fetch all pages and report which of them failed.

        Raises :class:`ContentFetchError` when the token or page 1 cannot be
        fetched. Cancellation propagates and discards anything collected so far.
        """
        assert self._client is not None  # noqa: S101

        try:
            cred = await self.fetch_access_token()
        except Exception as exc:
            raise ContentFetchError(f"failed to fetch access token: {exc}") from exc

        log.info("content_fetch_started", page_size=request.page_size)
        try:
            first = await fetch_page(self._client, cred.rest_instance_url, cred.access_token, request.for_page(1))
        except Exception as exc:
            raise ContentFetchError(f"failed to fetch first page of assets: {exc}") from exc

        total_pages = first.total_pages
        result = FetchResult(blocks=list(first.items), total_pages=max(total_pages, 1))
        if total_pages <= 1:
            log.info("content_fetch_completed", pages=1, blocks=len(result.blocks), failed_pages=0)
            return result

        # Later pages reuse page 1's page size rather than the requested one.
        limiter = (
            asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else contextlib.nullcontext()
        )
        pages = await asyncio.gather(
            *(
                self._fetch_page_tolerant(cred, request.for_page(page, first.page_size), limiter)
                for page in range(2, total_pages + 1)
            )
        )

        for page in pages:
            if isinstance(page, PageFailure):
                result.failures.append(page)
            else:
                result.blocks.extend(page.items)

        log.info(
            "content_fetch_completed",
            pages=total_pages,
            blocks=len(result.blocks),
            failed_pages=len(result.failures),
        )
        return result

    async def _fetch_page_tolerant(
        self,
        cred: Credential,
        request: ContentBlocksRequest,
        limiter: asyncio.Semaphore | contextlib.nullcontext,
    ) -> PageResult | PageFailure:
        assert self._client is not None  # noqa: S101
        async with limiter:
            try:
                return await fetch_page(self._client, cred.rest_instance_url, cred.access_token, request)
            except Exception as exc:
                # Whether one bad page should fail the whole run is left to the
                # engine (see SyncConfig.max_failed_page_ratio).
                log.warning(
                    "page_fetch_failed",
                    page=request.page,
                    error=f"Error fetching page {request.page}: {exc}",
                )
                return PageFailure(page=request.page, error=str(exc))
