"""In-memory access-token cache for the Salesforce auth endpoint.

Tokens are issued with ``grant_type=client_credentials`` by
``POST {auth_url}/v2/token``. The API documentation recommends refreshing a
token two minutes before it expires, so a cached credential is only served
while more than :data:`EXPIRY_MARGIN` seconds of its lifetime remain.

Refreshes are single-flight: the first caller that finds the cache stale
starts a refresh task, and every caller arriving while it is pending awaits
that same task, sharing its credential or its exception.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import httpx
import structlog

from contentsync.config import SalesforceConfig
from contentsync.models import Credential
from contentsync.sync.errors import DecodeError, TokenFetchFailedError, TransportError, UnauthorizedError

log = structlog.get_logger(__name__)

EXPIRY_MARGIN = 120.0  # seconds


class TokenCache:
    """Holds at most one live :class:`Credential` and refreshes it on demand."""

    def __init__(
        self,
        config: SalesforceConfig,
        *,
        clock: Callable[[], float] = time.time,
        margin: float = EXPIRY_MARGIN,
    ) -> None:
        self._config = config
        self._clock = clock
        self._margin = margin
        self._credential: Credential | None = None
        self._inflight: asyncio.Task[Credential] | None = None

    @property
    def credential(self) -> Credential | None:
        return self._credential

    def set(self, credential: Credential) -> None:
        """Replace the cached credential (e.g. to pre-seed a known token)."""
        self._credential = credential

    def clear(self) -> None:
        self._credential = None

    def _fresh(self) -> Credential | None:
        cred = self._credential
        if cred is not None and cred.is_fresh(self._clock(), self._margin):
            return cred
        return None

    async def get_or_refresh(self, http: httpx.AsyncClient) -> Credential:
        """Return a usable credential, authenticating at most once per expiry."""
        cred = self._fresh()
        if cred is not None:
            log.debug("token_cache_hit")
            return cred

        task = self._inflight
        if task is None:
            task = asyncio.create_task(self._run_refresh(http))
            task.add_done_callback(_retrieve_exception)
            self._inflight = task
        else:
            log.debug("token_refresh_joined")
        # Shielded so one cancelled caller does not abort the refresh for the rest.
        return await asyncio.shield(task)

    async def _run_refresh(self, http: httpx.AsyncClient) -> Credential:
        try:
            return await self._refresh(http)
        finally:
            self._inflight = None

    async def _refresh(self, http: httpx.AsyncClient) -> Credential:
        url = self._config.auth_url.rstrip("/") + "/v2/token"
        body = {
            "grant_type": "client_credentials",
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret.get_secret_value(),
        }
        try:
            resp = await http.post(url, json=body)
        except httpx.TransportError as exc:
            raise TransportError(f"failed to perform HTTP request: {exc}") from exc

        if resp.status_code == 401:
            raise UnauthorizedError()
        if not resp.is_success:
            raise TokenFetchFailedError(resp.status_code)

        try:
            data = resp.json()
            access_token = data["access_token"]
            rest_instance_url = data["rest_instance_url"]
            expires_in = int(data["expires_in"])
        except (ValueError, TypeError, KeyError) as exc:
            raise DecodeError(f"failed to decode response body: {exc}") from exc

        cred = Credential(
            access_token=access_token,
            rest_instance_url=rest_instance_url,
            expires_at=self._clock() + expires_in,
        )
        if expires_in - self._margin > 0:
            self._credential = cred
            log.info("token_refreshed", expires_in=expires_in)
        else:
            # Too short-lived to be worth caching; hand it out once.
            self._credential = None
            log.warning("token_not_cached", expires_in=expires_in)
        return cred


def _retrieve_exception(task: asyncio.Task) -> None:
    # Mark a failed refresh as seen even when every waiter was cancelled.
    if not task.cancelled():
        task.exception()
