"""Translate catalog payloads into domain value objects."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from stockrecon.domain.model import CatalogGroup, CatalogItem, CatalogSubGroup

from .schema import GroupPayload, ProductPayload, SubGroupPayload

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)


def translate_product(payload: ProductPayload | Mapping[str, object], *, tenant_id: int) -> CatalogItem:
    """Build a ``CatalogItem``; the tenant being fetched wins over a missing ``empId``."""

    model = (
        payload if isinstance(payload, ProductPayload) else ProductPayload.model_validate(payload)
    )
    return CatalogItem(
        id=model.id,
        description=model.description,
        tenant_id=model.tenant_id or tenant_id,
        stock=model.stock,
        barcode=model.barcode,
        price=model.price,
        promotional_price=model.promotional_price,
        group_id=model.group_id,
        subgroup_id=model.subgroup_id,
        has_image=model.has_image,
        active=model.active,
        brand=model.brand,
        unit=model.unit,
    )


def translate_products(entries: Iterable[object], *, tenant_id: int) -> tuple[CatalogItem, ...]:
    """Translate one page of listing entries.

    Null and empty entries are dropped silently; entries that cannot be read
    as a product (no usable id) are dropped with a warning.
    """

    items: list[CatalogItem] = []
    for entry in entries:
        if not entry:
            continue
        if not isinstance(entry, Mapping):
            log.warning("Skipping non-object catalog entry for tenant %s: %r", tenant_id, entry)
            continue
        try:
            items.append(translate_product(entry, tenant_id=tenant_id))
        except ValidationError as exc:
            log.warning(
                "Skipping unreadable catalog entry for tenant %s (%s error(s)): id=%r",
                tenant_id,
                exc.error_count(),
                entry.get("id"),
            )
    return tuple(items)


def translate_groups(entries: Iterable[object]) -> list[CatalogGroup]:
    groups: list[CatalogGroup] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        try:
            model = GroupPayload.model_validate(entry)
        except ValidationError:
            log.warning("Skipping unreadable catalog group: %r", entry)
            continue
        groups.append(CatalogGroup(id=model.id, name=model.name, tenant_id=model.tenant_id))
    return groups


def translate_subgroups(entries: Iterable[object]) -> list[CatalogSubGroup]:
    subgroups: list[CatalogSubGroup] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        try:
            model = SubGroupPayload.model_validate(entry)
        except ValidationError:
            log.warning("Skipping unreadable catalog subgroup: %r", entry)
            continue
        subgroups.append(
            CatalogSubGroup(
                id=model.id,
                name=model.name,
                group_id=model.group_id,
                tenant_id=model.tenant_id,
            )
        )
    return subgroups
