"""Remote catalog configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, require_env_vars
from .http_resilience import (
    NO_TRANSPORT_RETRIES,
    CacheConfig,
    FixedDelayRetry,
    RateLimit,
    ResilienceConfig,
)

DEFAULT_USER_AGENT = "stockrecon/1.0"
DEFAULT_PAGE_SIZE = 1000
LISTING_TIMEOUT_SECONDS = 30.0
ITEM_TIMEOUT_SECONDS = 10.0
IMAGE_TIMEOUT_SECONDS = 15.0
PAGE_DELAY_SECONDS = 0.2
LOOKUP_CACHE_TTL_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    """Holds remote catalog endpoints, paging and timeout settings."""

    resilience: ResilienceConfig
    lookup_resilience: ResilienceConfig
    page_size: int = DEFAULT_PAGE_SIZE
    page_delay_seconds: float = PAGE_DELAY_SECONDS
    page_retry: FixedDelayRetry = field(default_factory=FixedDelayRetry)
    listing_timeout_seconds: float = LISTING_TIMEOUT_SECONDS
    item_timeout_seconds: float = ITEM_TIMEOUT_SECONDS
    image_timeout_seconds: float = IMAGE_TIMEOUT_SECONDS


def build_catalog_config(base_url: str, *, user_agent: str = DEFAULT_USER_AGENT) -> CatalogConfig:
    headers = {"User-Agent": user_agent}
    # page retries are handled by the client with a fixed delay, not by the transport
    resilience = ResilienceConfig(
        name="catalog",
        base_url=base_url,
        timeout_seconds=LISTING_TIMEOUT_SECONDS,
        retry=NO_TRANSPORT_RETRIES,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        cache=None,
        default_headers=headers,
    )
    lookup_resilience = ResilienceConfig(
        name="catalog-lookups",
        base_url=base_url,
        timeout_seconds=ITEM_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        cache=CacheConfig(backend="memory", ttl_seconds=LOOKUP_CACHE_TTL_SECONDS),
        default_headers=headers,
    )
    return CatalogConfig(resilience=resilience, lookup_resilience=lookup_resilience)


def get_catalog_config() -> CatalogConfig:
    values = require_env_vars(("CATALOG_BASE_URL",))
    return build_catalog_config(
        values["CATALOG_BASE_URL"].rstrip("/"),
        user_agent=optional_env_var("CATALOG_USER_AGENT", DEFAULT_USER_AGENT),
    )
