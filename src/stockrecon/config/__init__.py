"""Application configuration helpers."""

from __future__ import annotations

from .catalog import CatalogConfig, build_catalog_config, get_catalog_config
from .credentials import CredentialsConfig, get_credentials_config
from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import (
    CacheConfig,
    FixedDelayRetry,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)
from .logging import configure_logging
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_http_cache_path,
    get_storage_config,
)
from .sync import SyncConfig, get_sync_config, parse_tenants

__all__ = [
    "CacheConfig",
    "CatalogConfig",
    "ConfigurationError",
    "CredentialsConfig",
    "DatabaseConfig",
    "FixedDelayRetry",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "build_catalog_config",
    "configure_logging",
    "get_catalog_config",
    "get_credentials_config",
    "get_database_config",
    "get_http_cache_path",
    "get_storage_config",
    "get_sync_config",
    "optional_env_var",
    "parse_tenants",
    "require_env_vars",
]
