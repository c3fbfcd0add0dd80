"""Reconciliation of the remote catalog against the backing store.

Flow for one tenant:
1) load tenant credentials from the shared cache
2) fetch the complete remote catalog (paged, fixed-delay retries)
3) fetch the complete identifier set of the backing store (paged)
4) keep remote items whose identifier is unknown locally
5) cache the result per tenant; derived views read from that cache
"""

from __future__ import annotations

from .engine import ReconciliationEngine, validate_tenant
from .views import duplicate_stats, latest_completion, sync_stats, unique_missing_items

__all__ = [
    "ReconciliationEngine",
    "duplicate_stats",
    "latest_completion",
    "sync_stats",
    "unique_missing_items",
    "validate_tenant",
]
