"""Identifier scans over the image-association table."""

from __future__ import annotations

import asyncio
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from stockrecon.config.storage import IDENTIFIER_PAGE_DELAY_SECONDS, IDENTIFIER_PAGE_SIZE
from stockrecon.domain.errors import StorageQueryError
from stockrecon.domain.model import StorageStats

from . import database
from .mappings import images_table

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.orm import Session

    from stockrecon.adapters.http_resilience import Sleep

log = getLogger(__name__)


class SqlAlchemyIdentifierIndex:
    """Read the set of catalog product ids already referenced by the store.

    Queries run in a worker thread so the event loop stays responsive while a
    large table is scanned.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        *,
        page_size: int = IDENTIFIER_PAGE_SIZE,
        page_delay_seconds: float = IDENTIFIER_PAGE_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._session_factory = session_factory
        self._page_size = page_size
        self._page_delay_seconds = page_delay_seconds
        self._sleep = sleep

    async def fetch_all_identifiers(self) -> set[str]:
        identifiers: set[str] = set()
        fetched = 0
        total = 0
        page = 0

        while True:
            rows, count = await asyncio.to_thread(
                self._fetch_range,
                page * self._page_size,
                include_count=page == 0,
            )
            if count is not None:
                total = count
            page += 1
            fetched += len(rows)
            identifiers.update(str(value) for value in rows if value)
            log.info(
                "Identifier page %s: %s rows (%s/%s)",
                page,
                len(rows),
                min(fetched, total),
                total,
            )

            if len(rows) < self._page_size or fetched >= total:
                break
            await self._sleep(self._page_delay_seconds)

        log.info("Loaded %s unique identifiers from %s rows", len(identifiers), fetched)
        return identifiers

    async def storage_stats(self) -> StorageStats:
        return await asyncio.to_thread(self._compute_stats)

    def _session(self) -> Session:
        factory = self._session_factory or database.session_factory()
        return factory()

    def _fetch_range(self, offset: int, *, include_count: bool) -> tuple[list[str | None], int | None]:
        count: int | None = None
        try:
            with self._session() as session:
                if include_count:
                    count = session.execute(
                        select(func.count()).select_from(images_table)
                    ).scalar_one()
                stmt = (
                    select(images_table.c.original_id)
                    .order_by(images_table.c.id)
                    .offset(offset)
                    .limit(self._page_size)
                )
                rows = list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise StorageQueryError(f"Failed to query product identifiers: {exc}") from exc
        return rows, count

    def _compute_stats(self) -> StorageStats:
        try:
            with self._session() as session:
                total = session.execute(select(func.count()).select_from(images_table)).scalar_one()
                unique = session.execute(
                    select(func.count(func.distinct(images_table.c.original_id)))
                ).scalar_one()
                successful = session.execute(
                    select(func.count()).where(images_table.c.isOk.is_(True))
                ).scalar_one()
                failed = session.execute(
                    select(func.count()).where(images_table.c.isOk.is_(False))
                ).scalar_one()
                status_rows = session.execute(
                    select(images_table.c.download_status, func.count()).group_by(
                        images_table.c.download_status
                    )
                ).all()
        except SQLAlchemyError as exc:
            raise StorageQueryError(f"Failed to compute storage stats: {exc}") from exc

        download_status: dict[str, int] = {}
        for status, amount in status_rows:
            key = status or "unknown"
            download_status[key] = download_status.get(key, 0) + amount
        return StorageStats(
            total=total,
            unique_original_ids=unique,
            successful=successful,
            failed=failed,
            download_status=MappingProxyType(download_status),
        )
