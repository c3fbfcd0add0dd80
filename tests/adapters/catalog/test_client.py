from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from stockrecon.adapters.catalog import POSITIVE_STOCK_FILTER, CatalogClient
from stockrecon.adapters.http_resilience import ResilientClient
from stockrecon.config.catalog import build_catalog_config
from stockrecon.config.http_resilience import ResilienceConfig  # noqa: TC001
from stockrecon.domain.errors import (
    AuthenticationError,
    MalformedResponseError,
    RemoteError,
    RequestTimeoutError,
    RetryExhaustedError,
    TransportError,
)
from stockrecon.domain.model import CatalogGroup, CatalogSubGroup, TenantCredential
from stockrecon.domain.reconciliation import ReconciliationEngine
from tests.helpers.fakes import FakeCredentialSource, FakeIdentifierSource, RecordingSleep

BASE_URL = "https://catalog.example.test/api"


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            headers=dict(resilience.default_headers or {}),
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def _make_catalog(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    sleep: RecordingSleep | None = None,
    tenants: tuple[int, ...] = (2,),
) -> CatalogClient:
    catalog = CatalogClient(
        config=build_catalog_config(BASE_URL),
        client_factory=_make_client_factory(handler),
        sleep=sleep or RecordingSleep(),
    )
    catalog.set_credentials(TenantCredential(tenant_id=t, token=f"jwt-{t}") for t in tenants)
    return catalog


def _product(item_id: int, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": item_id,
        "descricao": f"Produto {item_id}",
        "saldoEstoque": 3,
        "empId": 2,
    }
    payload.update(extra)
    return payload


def _envelope(docs: list[object], *, page: int, pages: int, total: int) -> dict[str, object]:
    return {"docs": docs, "total": total, "limit": 1000, "page": page, "pages": pages}


def test_fetch_all_items_walks_every_page() -> None:
    requests: list[httpx.Request] = []
    pages = {
        1: [_product(1), _product(2)],
        2: [_product(3), _product(4)],
        3: [_product(5)],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        page = int(request.url.params["page"])
        return httpx.Response(200, json=_envelope(pages[page], page=page, pages=3, total=5))

    sleep = RecordingSleep()
    catalog = _make_catalog(handler, sleep=sleep)

    items = asyncio.run(catalog.fetch_all_items(2))

    assert [item.id for item in items] == [1, 2, 3, 4, 5]
    assert len(requests) == 3
    assert [int(r.url.params["page"]) for r in requests] == [1, 2, 3]
    assert sleep.delays == [0.2, 0.2]


def test_fetch_page_sends_stock_filter_and_bearer_token() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=_envelope([_product(7)], page=1, pages=1, total=1))

    catalog = _make_catalog(handler)

    result = asyncio.run(catalog.fetch_page(2, page=1, page_size=50))

    request = captured[0]
    assert request.url.path == "/api/product"
    assert request.url.params["saldoEstoque"] == POSITIVE_STOCK_FILTER["saldoEstoque"]
    assert request.url.params["limit"] == "50"
    assert request.headers["Authorization"] == "Bearer jwt-2"
    assert request.headers["User-Agent"].startswith("stockrecon/")
    assert result.total_count == 1
    assert result.has_more is False


def test_fetch_page_drops_null_entries() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        docs: list[object] = [_product(1), None, {}, _product(2), {"descricao": "no id"}]
        return httpx.Response(200, json=_envelope(docs, page=1, pages=1, total=5))

    catalog = _make_catalog(handler)

    result = asyncio.run(catalog.fetch_page(2))

    assert [item.id for item in result.items] == [1, 2]
    assert result.total_count == 5


def test_fetch_all_items_retries_a_failing_page() -> None:
    calls = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json=_envelope([_product(1)], page=1, pages=1, total=1))

    sleep = RecordingSleep()
    catalog = _make_catalog(handler, sleep=sleep)

    items = asyncio.run(catalog.fetch_all_items(2))

    assert [item.id for item in items] == [1]
    assert calls["count"] == 2
    assert sleep.delays == [1.0]


def test_fetch_all_items_gives_up_after_three_attempts() -> None:
    calls = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(500, json={"error": "boom"})

    sleep = RecordingSleep()
    catalog = _make_catalog(handler, sleep=sleep)

    with pytest.raises(RetryExhaustedError) as excinfo:
        asyncio.run(catalog.fetch_all_items(2))

    assert calls["count"] == 3
    assert sleep.delays == [1.0, 1.0]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, RemoteError)
    assert "3" in str(excinfo.value)


def test_fetch_all_items_without_credential_makes_no_request() -> None:
    calls = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(200, json=_envelope([], page=1, pages=1, total=0))

    catalog = _make_catalog(handler, tenants=(2,))

    with pytest.raises(AuthenticationError) as excinfo:
        asyncio.run(catalog.fetch_all_items(5))

    assert str(excinfo.value) == "Token not found for tenant 5"
    assert calls["count"] == 0


def test_fetch_page_maps_error_payload() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "invalid token"})

    catalog = _make_catalog(handler)

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(catalog.fetch_page(2))

    assert excinfo.value.status_code == 401
    assert "invalid token" in str(excinfo.value)


def test_fetch_page_uses_text_body_when_error_is_not_json() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    catalog = _make_catalog(handler)

    with pytest.raises(RemoteError) as excinfo:
        asyncio.run(catalog.fetch_page(2))

    assert str(excinfo.value) == "Catalog API error (502): Bad gateway"


def test_fetch_page_maps_timeouts_and_connection_errors() -> None:
    def timeout_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    def broken_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RequestTimeoutError):
        asyncio.run(_make_catalog(timeout_handler).fetch_page(2))
    with pytest.raises(TransportError):
        asyncio.run(_make_catalog(broken_handler).fetch_page(2))


def _corrupt_gzip_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200, headers={"content-encoding": "gzip"}, content=b"not gzip", request=request
    )


def test_fetch_page_maps_undecodable_body_to_transport_error() -> None:
    with pytest.raises(TransportError):
        asyncio.run(_make_catalog(_corrupt_gzip_response).fetch_page(2))


def test_sync_all_keeps_going_after_undecodable_catalog_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers["Authorization"] == "Bearer token-2":
            return _corrupt_gzip_response(request)
        return httpx.Response(200, json=_envelope([_product(7)], page=1, pages=1, total=1))

    sleep = RecordingSleep()
    catalog = CatalogClient(
        config=build_catalog_config(BASE_URL),
        client_factory=_make_client_factory(handler),
        sleep=sleep,
    )
    engine = ReconciliationEngine(
        credentials=FakeCredentialSource.for_tenants(2, 3),
        catalog=catalog,
        identifiers=FakeIdentifierSource(),
    )

    status = asyncio.run(engine.sync_all([2, 3]))

    failed = status.result_for(2)
    synced = status.result_for(3)
    assert failed is not None
    assert synced is not None
    assert len(failed.errors) == 1
    assert "3 consecutive attempts" in failed.errors[0]
    assert [item.id for item in synced.missing_items] == [7]
    assert synced.errors == ()
    assert engine.is_running is False


@pytest.mark.parametrize(
    "body",
    [
        json.dumps([_product(1)]),
        json.dumps({"items": []}),
        json.dumps({"docs": "nope"}),
        "not json",
    ],
)
def test_fetch_page_rejects_unexpected_listing_payloads(body: str) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body)

    catalog = _make_catalog(handler)

    with pytest.raises(MalformedResponseError):
        asyncio.run(catalog.fetch_page(2))


def test_fetch_all_items_stops_at_reported_page_count() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        page = int(request.url.params["page"])
        # counter claims page 1 forever; the page count still bounds the walk
        return httpx.Response(200, json=_envelope([_product(page)], page=1, pages=2, total=2))

    catalog = _make_catalog(handler)

    items = asyncio.run(catalog.fetch_all_items(2))

    assert calls["count"] == 2
    assert [item.id for item in items] == [1, 2]


def test_fetch_item_takes_first_element_of_array_answer() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/product/ean/7891234567890"
        return httpx.Response(200, json=[_product(42, ean="7891234567890", foto="a.jpg")])

    catalog = _make_catalog(handler)

    item = asyncio.run(catalog.fetch_item_by_barcode(2, "7891234567890"))

    assert item.id == 42
    assert item.barcode == "7891234567890"
    assert item.has_image is True


def test_fetch_groups_accepts_envelope_and_plain_array() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/groups"):
            return httpx.Response(200, json=[{"id": 1, "nome": "Bebidas", "empId": 2}])
        return httpx.Response(
            200,
            json=_envelope([{"id": 4, "nome": "Sucos", "grupoId": 1}], page=1, pages=1, total=1),
        )

    async def scenario() -> tuple[list[CatalogGroup], list[CatalogSubGroup]]:
        async with _make_catalog(handler) as catalog:
            return await catalog.fetch_groups(2), await catalog.fetch_subgroups(2)

    groups, subgroups = asyncio.run(scenario())

    assert [(g.id, g.name) for g in groups] == [(1, "Bebidas")]
    assert [(s.id, s.group_id) for s in subgroups] == [(4, 1)]


def test_lookups_share_one_client_until_closed() -> None:
    opened: list[ResilientClient] = []
    build = _make_client_factory(lambda _request: httpx.Response(200, json=[_product(5)]))

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = build(resilience)
        opened.append(client)
        return client

    catalog = CatalogClient(
        config=build_catalog_config(BASE_URL),
        client_factory=factory,
        sleep=RecordingSleep(),
    )
    catalog.set_credentials([TenantCredential(tenant_id=2, token="jwt-2")])

    async def scenario() -> None:
        async with catalog:
            await catalog.fetch_item(2, 5)
            await catalog.fetch_groups(2)
            await catalog.fetch_item_image(2, 5)
        assert opened[0]._client.is_closed  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        await catalog.fetch_item(2, 5)

    asyncio.run(scenario())

    assert len(opened) == 2
    assert all(client.config.name == "catalog-lookups" for client in opened)


def test_fetch_item_image_defaults_content_type() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\xff\xd8")

    catalog = _make_catalog(handler)

    image = asyncio.run(catalog.fetch_item_image(2, 9))

    assert image.content == b"\xff\xd8"
    assert image.content_type == "image/jpeg"


def test_catalog_stats_reports_lost_connection_without_raising() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "down"})

    catalog = _make_catalog(handler)

    stats = asyncio.run(catalog.catalog_stats(2))

    assert stats.has_connection is False
    assert stats.total_items == 0
    assert asyncio.run(catalog.test_connection(2)) is False


def test_catalog_stats_reads_first_page_counters() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_envelope([_product(1)], page=1, pages=1234, total=1234))

    catalog = _make_catalog(handler)

    stats = asyncio.run(catalog.catalog_stats(2))

    assert stats.has_connection is True
    assert stats.total_items == 1234
    assert stats.total_pages == 1234
