"""Orchestrator comparing the remote catalog with the backing store.

One engine instance is created per process and handed to whoever needs to
trigger syncs or read results. At most one sync (single tenant or batch) runs
at a time; readers never wait for it.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from stockrecon.domain.errors import ConcurrentSyncError, InvalidTenantError, ReconciliationError
from stockrecon.domain.model import MissingItemInfo, ReconciliationResult, ReconciliationStatus

from .views import duplicate_stats, latest_completion, sync_stats, unique_missing_items

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from stockrecon.domain.model import DuplicateStats, SyncStats, TenantCredential
    from stockrecon.domain.ports import CatalogSource, CredentialSource, IdentifierSource

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def validate_tenant(tenant_id: object) -> int:
    if isinstance(tenant_id, bool) or not isinstance(tenant_id, int) or tenant_id <= 0:
        raise InvalidTenantError(f"Invalid tenant id: {tenant_id!r}")
    return tenant_id


class ReconciliationEngine:
    """Run tenant syncs and keep the latest result of each tenant in memory."""

    def __init__(
        self,
        *,
        credentials: CredentialSource,
        catalog: CatalogSource,
        identifiers: IdentifierSource,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.credentials = credentials
        self.catalog = catalog
        self.identifiers = identifiers
        self._clock = clock
        self._lock = threading.Lock()
        self._results: dict[int, ReconciliationResult] = {}

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def sync_tenant(self, tenant_id: int) -> ReconciliationResult:
        """Reconcile a single tenant.

        Fetch failures are recorded in the returned result. Only a running sync,
        an invalid tenant id or an unreadable credential cache raise.
        """

        validate_tenant(tenant_id)
        self._acquire()
        try:
            await self._load_credentials()
            return await self._sync_one(tenant_id)
        finally:
            self._lock.release()

    async def sync_all(self, tenant_ids: Iterable[int]) -> ReconciliationStatus:
        """Reconcile ``tenant_ids`` one after another, in the given order."""

        tenants = tuple(validate_tenant(tenant_id) for tenant_id in tenant_ids)
        self._acquire()
        try:
            log.info("Starting sync for tenants %s", ", ".join(map(str, tenants)))
            credentials = await self._load_credentials()
            known = {credential.tenant_id for credential in credentials}

            errors: list[str] = []
            for tenant_id in tenants:
                if tenant_id not in known:
                    message = f"Token not found for tenant {tenant_id}"
                    log.warning(message)
                    errors.append(message)
                    continue
                await self._sync_one(tenant_id)

            results = self._snapshot()
            log.info("Finished sync for %s tenant(s) with %s error(s)", len(tenants), len(errors))
            return ReconciliationStatus(
                is_running=False,
                results=results,
                last_sync=latest_completion(results),
                errors=tuple(errors),
            )
        finally:
            self._lock.release()

    def get_status(self) -> ReconciliationStatus:
        results = self._snapshot()
        return ReconciliationStatus(
            is_running=self.is_running,
            results=results,
            last_sync=latest_completion(results),
        )

    def get_result(self, tenant_id: int) -> ReconciliationResult | None:
        return self._results.get(tenant_id)

    def get_unique_missing_items(self, *, sort_by_id: bool = False) -> list[MissingItemInfo]:
        return unique_missing_items(self._snapshot(), sort_by_id=sort_by_id)

    def get_duplicate_stats(self) -> DuplicateStats:
        return duplicate_stats(self._snapshot())

    def get_sync_stats(self) -> SyncStats:
        return sync_stats(self._snapshot())

    def has_missing_items(self) -> bool:
        return self.get_sync_stats().total_missing > 0

    def get_missing_items(self, tenant_id: int) -> list[MissingItemInfo]:
        result = self._results.get(validate_tenant(tenant_id))
        if result is None:
            return []
        return [MissingItemInfo.from_item(item, with_groups=True) for item in result.missing_items]

    def _acquire(self) -> None:
        if not self._lock.acquire(blocking=False):
            raise ConcurrentSyncError

    def _snapshot(self) -> Mapping[int, ReconciliationResult]:
        return MappingProxyType(dict(self._results))

    async def _load_credentials(self) -> list[TenantCredential]:
        credentials = await self.credentials.get_tokens()
        self.catalog.set_credentials(credentials)
        return credentials

    async def _sync_one(self, tenant_id: int) -> ReconciliationResult:
        log.info("Starting sync for tenant %s", tenant_id)
        try:
            items = await self.catalog.fetch_all_items(tenant_id)
            identifiers = await self.identifiers.fetch_all_identifiers()
        except ReconciliationError as exc:
            log.error("Sync failed for tenant %s: %s", tenant_id, exc)  # noqa: TRY400
            result = ReconciliationResult.failed(tenant_id, str(exc), completed_at=self._clock())
        else:
            missing = tuple(item for item in items if item.identifier not in identifiers)
            result = ReconciliationResult(
                tenant_id=tenant_id,
                total_remote=len(items),
                total_local=len(identifiers),
                missing_items=missing,
                completed_at=self._clock(),
            )
            log.info(
                "Finished sync for tenant %s: remote=%s, local=%s, missing=%s",
                tenant_id,
                result.total_remote,
                result.total_local,
                len(missing),
            )

        self._results[tenant_id] = result
        return result
