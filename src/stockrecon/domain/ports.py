"""Ports the reconciliation engine consumes from adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .model import CatalogItem, TenantCredential


@runtime_checkable
class CredentialSource(Protocol):
    """Shared cache holding one bearer credential per tenant."""

    async def get_tokens(self) -> list[TenantCredential]: ...


@runtime_checkable
class CatalogSource(Protocol):
    """Remote catalog able to list every product of a tenant."""

    def set_credentials(self, credentials: Iterable[TenantCredential]) -> None: ...

    async def fetch_all_items(self, tenant_id: int) -> Sequence[CatalogItem]: ...


@runtime_checkable
class IdentifierSource(Protocol):
    """Backing store listing the product identifiers it already knows."""

    async def fetch_all_identifiers(self) -> set[str]: ...


__all__ = ["CatalogSource", "CredentialSource", "IdentifierSource"]
