"""Sync module — Salesforce client, token cache, engine, and scheduler."""

from contentsync.sync.engine import SyncEngine, SyncState
from contentsync.sync.salesforce import SalesforceClient
from contentsync.sync.scheduler import SyncScheduler
from contentsync.sync.token import TokenCache

__all__ = ["SalesforceClient", "SyncEngine", "SyncScheduler", "SyncState", "TokenCache"]
