"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from stockrecon.adapters.catalog import CatalogClient
from stockrecon.adapters.credentials import RedisCredentialCache
from stockrecon.adapters.sqlalchemy import SqlAlchemyIdentifierIndex, configured_engine, startup
from stockrecon.config import (
    get_catalog_config,
    get_credentials_config,
    get_database_config,
    get_sync_config,
)
from stockrecon.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stockrecon.adapters.credentials import TokenStats
    from stockrecon.domain.model import CatalogStats, ReconciliationStatus, StorageStats
    from stockrecon.domain.ports import CatalogSource, CredentialSource, IdentifierSource

log = getLogger(__name__)


def build_identifier_index() -> SqlAlchemyIdentifierIndex:
    config = get_database_config()
    if configured_engine() is None:
        startup(database_uri=config.uri)
    return SqlAlchemyIdentifierIndex(
        page_size=config.page_size,
        page_delay_seconds=config.page_delay_seconds,
    )


def build_reconciliation_engine(
    *,
    credentials: CredentialSource,
    catalog: CatalogSource | None = None,
    identifiers: IdentifierSource | None = None,
) -> ReconciliationEngine:
    """Wire an engine, filling in the configured catalog and store adapters."""

    return ReconciliationEngine(
        credentials=credentials,
        catalog=catalog or CatalogClient(config=get_catalog_config()),
        identifiers=identifiers or build_identifier_index(),
    )


async def sync_tenants(
    tenant_ids: Sequence[int] | None = None,
    *,
    engine: ReconciliationEngine | None = None,
) -> ReconciliationStatus:
    """Reconcile the given tenants, or the configured ones when none are given."""

    tenants = tuple(tenant_ids) if tenant_ids else get_sync_config().tenants
    if engine is not None:
        return await _run_sync(engine, tenants)
    async with RedisCredentialCache.from_config(get_credentials_config()) as cache:
        return await _run_sync(build_reconciliation_engine(credentials=cache), tenants)


async def _run_sync(engine: ReconciliationEngine, tenants: tuple[int, ...]) -> ReconciliationStatus:
    log.info("Starting reconciliation: tenants=%s", ", ".join(map(str, tenants)))
    status = await engine.sync_all(tenants)
    stats = engine.get_sync_stats()
    log.info(
        "Finished reconciliation: missing=%s, errors=%s, last_sync=%s",
        stats.total_missing,
        len(status.errors),
        status.last_sync,
    )
    return status


async def credential_stats(cache: RedisCredentialCache | None = None) -> TokenStats:
    if cache is not None:
        return await cache.token_stats()
    async with RedisCredentialCache.from_config(get_credentials_config()) as owned:
        return await owned.token_stats()


async def storage_stats(index: SqlAlchemyIdentifierIndex | None = None) -> StorageStats:
    return await (index or build_identifier_index()).storage_stats()


async def catalog_stats(
    tenant_id: int,
    *,
    credentials: CredentialSource | None = None,
    catalog: CatalogClient | None = None,
) -> CatalogStats:
    client = catalog or CatalogClient(config=get_catalog_config())
    if credentials is not None:
        client.set_credentials(await credentials.get_tokens())
    else:
        async with RedisCredentialCache.from_config(get_credentials_config()) as cache:
            client.set_credentials(await cache.get_tokens())
    return await client.catalog_stats(tenant_id)
