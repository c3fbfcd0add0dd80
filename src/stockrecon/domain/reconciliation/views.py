"""Read-only views derived from cached per-tenant reconciliation results.

Tenants are always walked in ascending id order so that attribution of a
product missing in several tenants is deterministic: the lowest tenant wins.
"""

from __future__ import annotations

from collections import Counter
from types import MappingProxyType
from typing import TYPE_CHECKING

from stockrecon.domain.model import DuplicateStats, MissingItemInfo, SyncStats

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from stockrecon.domain.model import ReconciliationResult


def latest_completion(results: Mapping[int, ReconciliationResult]) -> datetime | None:
    if not results:
        return None
    return max(result.completed_at for result in results.values())


def unique_missing_items(
    results: Mapping[int, ReconciliationResult],
    *,
    sort_by_id: bool = False,
) -> list[MissingItemInfo]:
    """Merge missing items of all tenants, keeping the first tenant that reports an id."""

    seen: set[int] = set()
    merged: list[MissingItemInfo] = []
    for tenant_id in sorted(results):
        for item in results[tenant_id].missing_items:
            if item.id in seen:
                continue
            seen.add(item.id)
            merged.append(MissingItemInfo.from_item(item))
    if sort_by_id:
        merged.sort(key=lambda info: info.id)
    return merged


def duplicate_stats(results: Mapping[int, ReconciliationResult]) -> DuplicateStats:
    """Count ids that are missing in more than one tenant.

    With two tenants this is the plain intersection of both missing sets; with
    more, an id counts once no matter how many tenants report it.
    """

    multiplicity: Counter[int] = Counter()
    first_seen: list[int] = []
    per_tenant: dict[int, int] = {}
    for tenant_id in sorted(results):
        missing = results[tenant_id].missing_items
        per_tenant[tenant_id] = len(missing)
        for item_id in dict.fromkeys(item.id for item in missing):
            if item_id not in multiplicity:
                first_seen.append(item_id)
            multiplicity[item_id] += 1

    duplicates = tuple(item_id for item_id in first_seen if multiplicity[item_id] > 1)
    return DuplicateStats(
        total_unique=len(multiplicity),
        total_duplicates=len(duplicates),
        per_tenant_totals=MappingProxyType(per_tenant),
        duplicate_ids=duplicates,
    )


def sync_stats(results: Mapping[int, ReconciliationResult]) -> SyncStats:
    missing_by_tenant = {
        tenant_id: len(results[tenant_id].missing_items) for tenant_id in sorted(results)
    }
    return SyncStats(
        total_missing=sum(missing_by_tenant.values()),
        missing_by_tenant=MappingProxyType(missing_by_tenant),
        last_sync=latest_completion(results),
    )
