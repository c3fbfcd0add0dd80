"""Pydantic models describing the remote catalog payloads."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _lenient_int(value: object) -> int | None:
    """Coerce counters the catalog sometimes sends as strings, null or garbage."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(cast("str | int | float", value)))
    except (TypeError, ValueError):
        return None


def _lenient_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(cast("str | int | float", value))
    except (TypeError, ValueError):
        return None


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProductPayload(CatalogBaseModel):
    id: int
    description: str = Field(default="", alias="descricao")
    barcode: str | None = Field(default=None, alias="ean")
    price: float | None = Field(default=None, alias="preco")
    promotional_price: float | None = Field(default=None, alias="precoPromocional")
    stock: int = Field(default=0, alias="saldoEstoque")
    group_id: int | None = Field(default=None, alias="idGrupo")
    subgroup_id: int | None = Field(default=None, alias="idSubGrupo")
    tenant_id: int | None = Field(default=None, alias="empId")
    active: bool | None = Field(default=None, alias="ativo")
    brand: str | None = Field(default=None, alias="marca")
    unit: str | None = Field(default=None, alias="unidade")
    photo: str | None = Field(default=None, alias="foto")

    _normalize_text = field_validator("brand", "unit", "photo", mode="before")(_blank_to_none)
    _normalize_numbers = field_validator("price", "promotional_price", mode="before")(
        _lenient_float
    )
    _normalize_ids = field_validator("group_id", "subgroup_id", "tenant_id", mode="before")(
        _lenient_int
    )

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("barcode", mode="before")
    @classmethod
    def _barcode_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return _blank_to_none(value)

    @field_validator("stock", mode="before")
    @classmethod
    def _parse_stock(cls, value: object) -> int:
        return _lenient_int(value) or 0

    @property
    def has_image(self) -> bool:
        return self.photo is not None


class ListingEnvelope(CatalogBaseModel):
    """Paginated answer: items under ``docs`` plus optional paging counters."""

    docs: list[object]
    total: int | None = None
    limit: int | None = None
    page: int | None = None
    pages: int | None = None

    _normalize_counters = field_validator("total", "limit", "page", "pages", mode="before")(
        _lenient_int
    )


@dataclass(slots=True, frozen=True)
class PlainArray:
    items: list[object]


@dataclass(slots=True, frozen=True)
class Malformed:
    reason: str


DecodedListing = ListingEnvelope | PlainArray | Malformed


def decode_listing(payload: object) -> DecodedListing:
    """Classify a raw JSON answer once, so callers never inspect its shape again."""

    if isinstance(payload, list):
        return PlainArray(items=cast("list[object]", payload))
    if not isinstance(payload, Mapping):
        return Malformed(f"expected an object, got {type(payload).__name__}")
    mapping = cast("Mapping[str, object]", payload)
    if "docs" not in mapping:
        return Malformed('missing "docs" field')
    if not isinstance(mapping["docs"], list):
        return Malformed('"docs" field is not an array')
    try:
        return ListingEnvelope.model_validate(mapping)
    except ValidationError as exc:
        return Malformed(f"invalid envelope: {exc.error_count()} error(s)")


class GroupPayload(CatalogBaseModel):
    id: int
    name: str = Field(default="", alias="nome")
    tenant_id: int | None = Field(default=None, alias="empId")


class SubGroupPayload(CatalogBaseModel):
    id: int
    name: str = Field(default="", alias="nome")
    group_id: int | None = Field(default=None, alias="grupoId")
    tenant_id: int | None = Field(default=None, alias="empId")


class ErrorPayload(CatalogBaseModel):
    error: str | None = None
    details: str | None = None

    _normalize = field_validator("error", "details", mode="before")(_blank_to_none)

    @property
    def message(self) -> str | None:
        return self.error or self.details
