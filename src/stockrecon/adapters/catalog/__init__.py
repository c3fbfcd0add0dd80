"""Public interface for the remote catalog adapter."""

from __future__ import annotations

from .client import POSITIVE_STOCK_FILTER, CatalogClient
from .schema import (
    DecodedListing,
    ListingEnvelope,
    Malformed,
    PlainArray,
    ProductPayload,
    decode_listing,
)
from .translator import translate_product, translate_products

__all__ = [
    "POSITIVE_STOCK_FILTER",
    "CatalogClient",
    "DecodedListing",
    "ListingEnvelope",
    "Malformed",
    "PlainArray",
    "ProductPayload",
    "decode_listing",
    "translate_product",
    "translate_products",
]
