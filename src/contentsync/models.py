"""Domain models shared by the fetcher, the sync engine and the sinks."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SyncStatus = Literal["running", "completed", "partial", "failed", "cancelled"]

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class Credential:
    """An access token and the REST instance it is valid for."""

    access_token: str
    rest_instance_url: str
    expires_at: float  # epoch seconds

    def is_fresh(self, now: float, margin: float = 0.0) -> bool:
        return now < self.expires_at - margin


class ContentBlock(BaseModel):
    """A content asset as returned by the query endpoint."""

    model_config = ConfigDict(extra="ignore")

    content: str = ""


class ContentBlocksRequest(BaseModel):
    """Query sent to the asset query endpoint.

    ``query``, ``sort`` and ``fields`` are passed through untouched; only the
    page number and size are managed by the fetcher.
    """

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    query: dict[str, Any] | None = None
    sort: list[dict[str, Any]] | None = None
    fields: list[str] | None = None

    def for_page(self, page: int, page_size: int | None = None) -> ContentBlocksRequest:
        """Return a copy targeting *page*; the original request is not mutated."""
        update: dict[str, int] = {"page": page}
        if page_size is not None:
            update["page_size"] = page_size
        return self.model_copy(update=update)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"page": {"page": self.page, "pageSize": self.page_size}}
        if self.query is not None:
            payload["query"] = self.query
        if self.sort is not None:
            payload["sort"] = self.sort
        if self.fields is not None:
            payload["fields"] = self.fields
        return payload


class PageResult(BaseModel):
    """One decoded page from the asset query endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    count: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(alias="pageSize", ge=1)
    items: list[ContentBlock] = Field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.count / self.page_size)


@dataclass(frozen=True)
class PageFailure:
    """A page that could not be fetched during a run."""

    page: int
    error: str


@dataclass
class FetchResult:
    """Aggregated outcome of fetching every page of a query."""

    blocks: list[ContentBlock] = field(default_factory=list)
    total_pages: int = 0
    failures: list[PageFailure] = field(default_factory=list)

    @property
    def failed_ratio(self) -> float:
        if not self.total_pages:
            return 0.0
        return len(self.failures) / self.total_pages


class SyncRun(BaseModel):
    """Record of a single synchronisation run. Kept in memory only."""

    started_at: datetime
    finished_at: datetime | None = None
    status: SyncStatus = "running"
    blocks: int = 0
    pages: int = 0
    failed_pages: list[int] = Field(default_factory=list)
    error_message: str | None = None

    def to_summary(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
