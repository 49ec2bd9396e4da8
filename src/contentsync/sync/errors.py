"""Exceptions raised while talking to Salesforce and while running a sync."""

from __future__ import annotations


class SalesforceError(Exception):
    """Base class for Salesforce client failures."""


class TokenError(SalesforceError):
    """Raised when an access token cannot be obtained."""


class UnauthorizedError(TokenError):
    """Raised when the auth endpoint rejects the client credentials (HTTP 401)."""

    def __init__(self) -> None:
        super().__init__("unauthorized")


class TokenFetchFailedError(TokenError):
    """Raised for any other non-2xx response from the auth endpoint."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"failed to fetch access token, status code: {status_code}")


class TransportError(SalesforceError):
    """Raised when the HTTP request itself fails (DNS, connect, timeout...)."""


class PageFetchFailedError(SalesforceError):
    """Raised for a non-2xx response from the asset query endpoint."""

    def __init__(self, page: int, status_code: int) -> None:
        self.page = page
        self.status_code = status_code
        super().__init__(f"failed to fetch assets, status code: {status_code}")


class DecodeError(SalesforceError):
    """Raised when a response body is not the JSON shape we expect."""


class ContentFetchError(SalesforceError):
    """Raised when a whole fetch is aborted; the cause is chained."""


class UploadError(Exception):
    """Raised when a sink fails to store content blocks."""


class SyncError(Exception):
    """Raised by the sync engine when a run fails; the cause is chained."""


class SyncInProgressError(RuntimeError):
    """Raised when a run is requested while another one is still going."""

    def __init__(self) -> None:
        super().__init__("Sync already in progress")
