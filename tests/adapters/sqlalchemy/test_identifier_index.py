from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import insert, text
from sqlalchemy.orm import sessionmaker

from stockrecon.adapters.sqlalchemy import SqlAlchemyIdentifierIndex, images_table
from stockrecon.domain.errors import StorageQueryError
from tests.helpers.fakes import RecordingSleep

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _insert_rows(engine: Engine, rows: list[dict[str, object]]) -> None:
    with engine.begin() as connection:
        connection.execute(insert(images_table), rows)


def _row(row_id: int, original_id: str | None, **extra: object) -> dict[str, object]:
    return {"id": f"img-{row_id:04d}", "original_id": original_id, **extra}


def test_fetch_all_identifiers_pages_through_table(storage_engine: Engine) -> None:
    _insert_rows(storage_engine, [_row(i, str(100 + i)) for i in range(7)])
    sleep = RecordingSleep()
    index = SqlAlchemyIdentifierIndex(
        sessionmaker(bind=storage_engine),
        page_size=3,
        page_delay_seconds=0.1,
        sleep=sleep,
    )

    identifiers = asyncio.run(index.fetch_all_identifiers())

    assert identifiers == {str(100 + i) for i in range(7)}
    assert sleep.delays == [0.1, 0.1]


def test_fetch_all_identifiers_deduplicates_and_skips_nulls(storage_engine: Engine) -> None:
    _insert_rows(
        storage_engine,
        [_row(1, "101"), _row(2, "101"), _row(3, None), _row(4, ""), _row(5, "102")],
    )
    index = SqlAlchemyIdentifierIndex(sessionmaker(bind=storage_engine), sleep=RecordingSleep())

    identifiers = asyncio.run(index.fetch_all_identifiers())

    assert identifiers == {"101", "102"}


def test_fetch_all_identifiers_on_empty_table(storage_engine: Engine) -> None:
    sleep = RecordingSleep()
    index = SqlAlchemyIdentifierIndex(sessionmaker(bind=storage_engine), sleep=sleep)

    assert asyncio.run(index.fetch_all_identifiers()) == set()
    assert sleep.delays == []


def test_fetch_all_identifiers_stops_after_exactly_full_last_page(storage_engine: Engine) -> None:
    _insert_rows(storage_engine, [_row(i, str(i)) for i in range(4)])
    sleep = RecordingSleep()
    index = SqlAlchemyIdentifierIndex(
        sessionmaker(bind=storage_engine), page_size=2, sleep=sleep
    )

    identifiers = asyncio.run(index.fetch_all_identifiers())

    assert len(identifiers) == 4
    assert len(sleep.delays) == 1


def test_fetch_all_identifiers_maps_query_failures(storage_engine: Engine) -> None:
    with storage_engine.begin() as connection:
        connection.execute(text("DROP TABLE images"))
    index = SqlAlchemyIdentifierIndex(sessionmaker(bind=storage_engine), sleep=RecordingSleep())

    with pytest.raises(StorageQueryError):
        asyncio.run(index.fetch_all_identifiers())


def test_storage_stats_summarises_download_outcomes(storage_engine: Engine) -> None:
    _insert_rows(
        storage_engine,
        [
            _row(1, "101", isOk=True, download_status="completed"),
            _row(2, "101", isOk=True, download_status="completed"),
            _row(3, "102", isOk=False, download_status="failed"),
            _row(4, "103", isOk=None, download_status=None),
        ],
    )
    index = SqlAlchemyIdentifierIndex(sessionmaker(bind=storage_engine))

    stats = asyncio.run(index.storage_stats())

    assert stats.total == 4
    assert stats.unique_original_ids == 3
    assert stats.successful == 2
    assert stats.failed == 1
    assert dict(stats.download_status) == {"completed": 2, "failed": 1, "unknown": 1}


def test_index_uses_configured_session_factory(configured_storage: Engine) -> None:
    _insert_rows(configured_storage, [_row(1, "55")])
    index = SqlAlchemyIdentifierIndex(sleep=RecordingSleep())

    assert asyncio.run(index.fetch_all_identifiers()) == {"55"}


def test_index_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError, match="page_size"):
        SqlAlchemyIdentifierIndex(sessionmaker(), page_size=0)
