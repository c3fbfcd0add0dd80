"""HTTP client for the remote inventory catalog."""

from __future__ import annotations

import asyncio
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from stockrecon.adapters.http_resilience import ResilientClient, retry_async
from stockrecon.domain.errors import (
    RETRYABLE_CATALOG_ERRORS,
    AuthenticationError,
    CatalogError,
    MalformedResponseError,
    RemoteError,
    RequestTimeoutError,
    RetryExhaustedError,
    TransportError,
)
from stockrecon.domain.model import CatalogStats, ItemImage, PageResult

from .schema import ErrorPayload, ListingEnvelope, Malformed, PlainArray, decode_listing
from .translator import translate_groups, translate_product, translate_products, translate_subgroups

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from types import TracebackType

    from stockrecon.adapters.http_resilience import QueryParams, Sleep
    from stockrecon.config.catalog import CatalogConfig
    from stockrecon.config.http_resilience import ResilienceConfig
    from stockrecon.domain.model import (
        CatalogGroup,
        CatalogItem,
        CatalogSubGroup,
        TenantCredential,
    )

log = getLogger(__name__)

# Business rule: only products with positive stock are ever listed.
POSITIVE_STOCK_FILTER = {"saldoEstoque": "positivo"}
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"


class CatalogClient:
    """Typed access to the catalog API with per-tenant bearer credentials."""

    def __init__(
        self,
        *,
        config: CatalogConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or ResilientClient
        self._sleep = sleep
        self._tokens: dict[int, str] = {}
        self._lookup_client: ResilientClient | None = None

    async def __aenter__(self) -> CatalogClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the lookup client; a later lookup opens a fresh one."""

        if self._lookup_client is not None:
            await self._lookup_client.aclose()
            self._lookup_client = None

    def set_credentials(self, credentials: Iterable[TenantCredential]) -> None:
        self._tokens = {credential.tenant_id: credential.token for credential in credentials}

    async def fetch_page(
        self,
        tenant_id: int,
        page: int = 1,
        page_size: int | None = None,
    ) -> PageResult:
        headers = self._auth_headers(tenant_id)
        async with self._client_factory(self._config.resilience) as client:
            return await self._fetch_page(
                client,
                tenant_id=tenant_id,
                page=page,
                page_size=page_size or self._config.page_size,
                headers=headers,
            )

    async def fetch_all_items(self, tenant_id: int) -> list[CatalogItem]:
        """Fetch every listed product of ``tenant_id``.

        Pages are requested until the catalog reports the last page. A page that
        keeps failing aborts the whole fetch; nothing fetched so far is returned.
        """

        headers = self._auth_headers(tenant_id)
        page_size = self._config.page_size
        items: list[CatalogItem] = []
        page = 1
        log.info("Fetching catalog for tenant %s", tenant_id)

        async with self._client_factory(self._config.resilience) as client:
            while True:
                fetch = partial(
                    self._fetch_page,
                    client,
                    tenant_id=tenant_id,
                    page=page,
                    page_size=page_size,
                    headers=headers,
                )
                try:
                    result = await retry_async(
                        fetch,
                        policy=self._config.page_retry,
                        retry_on=RETRYABLE_CATALOG_ERRORS,
                        sleep=self._sleep,
                        description=f"Catalog page {page} for tenant {tenant_id}",
                    )
                except RetryExhaustedError:
                    log.error("Giving up on catalog for tenant %s at page %s", tenant_id, page)  # noqa: TRY400
                    raise

                items.extend(result.items)
                log.info(
                    "Catalog page %s/%s for tenant %s: %s items (total %s)",
                    result.current_page,
                    result.total_pages,
                    tenant_id,
                    len(result.items),
                    len(items),
                )
                # the local counter also bounds the loop if the catalog misreports its page
                if not result.has_more or page >= result.total_pages:
                    break
                page += 1
                await self._sleep(self._config.page_delay_seconds)

        log.info("Fetched %s catalog items for tenant %s", len(items), tenant_id)
        return items

    async def fetch_item(self, tenant_id: int, item_id: int) -> CatalogItem:
        return await self._fetch_single(tenant_id, f"product/{item_id}", label=f"product {item_id}")

    async def fetch_item_by_barcode(self, tenant_id: int, barcode: str) -> CatalogItem:
        return await self._fetch_single(
            tenant_id, f"product/ean/{barcode}", label=f"barcode {barcode}"
        )

    async def fetch_groups(self, tenant_id: int) -> list[CatalogGroup]:
        entries = await self._fetch_lookup(tenant_id, "product/groups")
        return translate_groups(entries)

    async def fetch_subgroups(self, tenant_id: int) -> list[CatalogSubGroup]:
        entries = await self._fetch_lookup(tenant_id, "product/subgroups")
        return translate_subgroups(entries)

    async def fetch_item_image(self, tenant_id: int, item_id: int) -> ItemImage:
        response = await self._get(
            self._lookups(),
            f"product/{item_id}/image",
            headers=self._auth_headers(tenant_id),
            timeout=self._config.image_timeout_seconds,
        )
        content_type = response.headers.get("content-type") or DEFAULT_IMAGE_CONTENT_TYPE
        return ItemImage(content=response.content, content_type=content_type)

    async def test_connection(self, tenant_id: int) -> bool:
        try:
            await self.fetch_page(tenant_id, 1, 1)
        except CatalogError as exc:
            log.warning("Catalog connection check failed for tenant %s: %s", tenant_id, exc)
            return False
        log.info("Catalog connection OK for tenant %s", tenant_id)
        return True

    async def catalog_stats(self, tenant_id: int) -> CatalogStats:
        try:
            first_page = await self.fetch_page(tenant_id, 1, 1)
        except CatalogError as exc:
            log.warning("Could not read catalog stats for tenant %s: %s", tenant_id, exc)
            return CatalogStats(total_items=0, total_pages=0, has_connection=False)
        return CatalogStats(
            total_items=first_page.total_count,
            total_pages=first_page.total_pages,
            has_connection=True,
        )

    def _auth_headers(self, tenant_id: int) -> dict[str, str]:
        token = self._tokens.get(tenant_id)
        if not token:
            raise AuthenticationError(tenant_id)
        return {"Authorization": f"Bearer {token}"}

    def _lookups(self) -> ResilientClient:
        # one client per CatalogClient so its response cache outlives a single call
        if self._lookup_client is None:
            self._lookup_client = self._client_factory(self._config.lookup_resilience)
        return self._lookup_client

    async def _fetch_page(
        self,
        client: ResilientClient,
        *,
        tenant_id: int,
        page: int,
        page_size: int,
        headers: dict[str, str],
    ) -> PageResult:
        params: dict[str, str | int] = {"limit": page_size, **POSITIVE_STOCK_FILTER, "page": page}
        response = await self._get(
            client,
            "product",
            headers=headers,
            params=params,
            timeout=self._config.listing_timeout_seconds,
        )
        decoded = decode_listing(_json(response))
        if isinstance(decoded, Malformed):
            raise MalformedResponseError(f"Unexpected catalog listing payload: {decoded.reason}")
        if isinstance(decoded, PlainArray):
            raise MalformedResponseError("Unexpected catalog listing payload: missing pagination")

        items = translate_products(decoded.docs, tenant_id=tenant_id)
        return PageResult(
            items=items,
            total_count=decoded.total if decoded.total is not None else len(items),
            total_pages=decoded.pages or 1,
            current_page=decoded.page or page,
        )

    async def _fetch_single(self, tenant_id: int, path: str, *, label: str) -> CatalogItem:
        response = await self._get(
            self._lookups(),
            path,
            headers=self._auth_headers(tenant_id),
            params=POSITIVE_STOCK_FILTER,
            timeout=self._config.item_timeout_seconds,
        )
        payload = _json(response)
        if isinstance(payload, list):
            if not payload:
                raise MalformedResponseError(f"Catalog returned no data for {label}")
            payload = payload[0]
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"Unexpected catalog payload for {label}")
        try:
            return translate_product(payload, tenant_id=tenant_id)
        except ValidationError as exc:
            raise MalformedResponseError(f"Unreadable catalog payload for {label}") from exc

    async def _fetch_lookup(self, tenant_id: int, path: str) -> list[object]:
        response = await self._get(
            self._lookups(),
            path,
            headers=self._auth_headers(tenant_id),
            timeout=self._config.item_timeout_seconds,
        )
        decoded = decode_listing(_json(response))
        if isinstance(decoded, ListingEnvelope):
            return decoded.docs
        if isinstance(decoded, PlainArray):
            return decoded.items
        log.warning("Unexpected catalog payload for %s: %s", path, decoded.reason)
        return []

    async def _get(
        self,
        client: ResilientClient,
        path: str,
        *,
        headers: dict[str, str],
        timeout: float,
        params: QueryParams | None = None,
    ) -> httpx.Response:
        try:
            response = await client.get(path, params=params, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"Catalog request to {path} timed out") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Connection error requesting {path}: {exc}") from exc
        except httpx.RequestError as exc:
            # undecodable bodies and other request failures
            raise TransportError(f"Request to {path} failed: {exc}") from exc

        if not response.is_success:
            message = _error_message(response)
            log.error("Catalog error %s on %s: %s", response.status_code, path, message)
            raise RemoteError(message, status_code=response.status_code)
        return response


def _json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError("Catalog response is not valid JSON") from exc


def _error_message(response: httpx.Response) -> str:
    default = f"Catalog API error ({response.status_code})"
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return f"{default}: {text}" if text else default

    if isinstance(payload, dict):
        try:
            message = ErrorPayload.model_validate(payload).message
        except ValidationError:
            message = None
        if message:
            return f"{default}: {message}"
    return default
