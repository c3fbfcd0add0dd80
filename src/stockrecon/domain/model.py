"""Value objects shared by the catalog, storage and reconciliation layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


def _empty_mapping() -> Mapping[int, int]:
    return MappingProxyType({})


@dataclass(slots=True, frozen=True)
class TenantCredential:
    """Bearer token issued to one tenant."""

    tenant_id: int
    token: str


@dataclass(slots=True, frozen=True)
class CatalogItem:
    """One product as listed by the remote catalog for a tenant.

    ``id`` is only unique within a tenant. ``stock`` is taken as reported.
    """

    id: int
    description: str
    tenant_id: int
    stock: int = 0
    barcode: str | None = None
    price: float | None = None
    promotional_price: float | None = None
    group_id: int | None = None
    subgroup_id: int | None = None
    has_image: bool = False
    active: bool | None = None
    brand: str | None = None
    unit: str | None = None

    @property
    def identifier(self) -> str:
        """Key used by the backing store to reference this product."""
        return str(self.id)


@dataclass(slots=True, frozen=True)
class CatalogGroup:
    id: int
    name: str
    tenant_id: int | None = None


@dataclass(slots=True, frozen=True)
class CatalogSubGroup:
    id: int
    name: str
    group_id: int | None = None
    tenant_id: int | None = None


@dataclass(slots=True, frozen=True)
class ItemImage:
    content: bytes
    content_type: str


@dataclass(slots=True, frozen=True)
class PageResult:
    items: tuple[CatalogItem, ...]
    total_count: int
    total_pages: int
    current_page: int

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages


@dataclass(slots=True, frozen=True)
class CatalogStats:
    total_items: int
    total_pages: int
    has_connection: bool


@dataclass(slots=True, frozen=True)
class StorageStats:
    total: int
    unique_original_ids: int
    successful: int
    failed: int
    download_status: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(slots=True, frozen=True)
class MissingItemInfo:
    """Display-oriented view of a catalog item absent from the backing store."""

    id: int
    description: str
    tenant_id: int
    stock: int
    barcode: str | None = None
    price: float | None = None
    has_image: bool = False
    group: str | None = None
    subgroup: str | None = None

    @classmethod
    def from_item(cls, item: CatalogItem, *, with_groups: bool = False) -> MissingItemInfo:
        group: str | None = None
        subgroup: str | None = None
        if with_groups:
            group = f"Group {item.group_id}" if item.group_id else None
            subgroup = f"Subgroup {item.subgroup_id}" if item.subgroup_id else None
        return cls(
            id=item.id,
            description=item.description,
            tenant_id=item.tenant_id,
            stock=item.stock,
            barcode=item.barcode,
            price=item.price,
            has_image=item.has_image,
            group=group,
            subgroup=subgroup,
        )


@dataclass(slots=True, frozen=True)
class ReconciliationResult:
    """Outcome of one tenant sync attempt.

    A failed attempt is represented with zero totals, no missing items and at
    least one entry in ``errors``.
    """

    tenant_id: int
    total_remote: int
    total_local: int
    missing_items: tuple[CatalogItem, ...]
    completed_at: datetime
    errors: tuple[str, ...] = ()

    @classmethod
    def failed(cls, tenant_id: int, message: str, *, completed_at: datetime) -> ReconciliationResult:
        return cls(
            tenant_id=tenant_id,
            total_remote=0,
            total_local=0,
            missing_items=(),
            completed_at=completed_at,
            errors=(message,),
        )

    @property
    def succeeded(self) -> bool:
        return not self.errors

    @property
    def in_sync(self) -> bool:
        return not self.errors and not self.missing_items


@dataclass(slots=True, frozen=True)
class ReconciliationStatus:
    is_running: bool
    results: Mapping[int, ReconciliationResult]
    last_sync: datetime | None
    errors: tuple[str, ...] = ()

    def result_for(self, tenant_id: int) -> ReconciliationResult | None:
        return self.results.get(tenant_id)


@dataclass(slots=True, frozen=True)
class DuplicateStats:
    total_unique: int
    total_duplicates: int
    per_tenant_totals: Mapping[int, int] = field(default_factory=_empty_mapping)
    duplicate_ids: tuple[int, ...] = ()


@dataclass(slots=True, frozen=True)
class SyncStats:
    total_missing: int
    missing_by_tenant: Mapping[int, int] = field(default_factory=_empty_mapping)
    last_sync: datetime | None = None
