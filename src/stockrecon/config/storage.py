"""Backing store and local data directory settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var, require_env_vars

IDENTIFIER_PAGE_SIZE: Final[int] = 1000
IDENTIFIER_PAGE_DELAY_SECONDS: Final[float] = 0.1


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local directory for files the tool keeps between runs (HTTP cache)."""

    data_dir: Path
    http_cache_filename: str = "http_cache.db"

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        directory = self.data_dir.expanduser().resolve()
        if ensure:
            directory.mkdir(parents=True, exist_ok=True)
        return directory / self.http_cache_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Backing store connection and identifier scan settings."""

    uri: str
    page_size: int = IDENTIFIER_PAGE_SIZE
    page_delay_seconds: float = IDENTIFIER_PAGE_DELAY_SECONDS


def _xdg_data_home() -> Path:
    return Path(os.getenv("XDG_DATA_HOME") or Path.home() / ".local" / "share")


def get_storage_config() -> StorageConfig:
    default = str(_xdg_data_home() / "stockrecon")
    return StorageConfig(data_dir=Path(optional_env_var("STOCKRECON_DATA_DIR", default)))


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path()


def get_database_config() -> DatabaseConfig:
    return DatabaseConfig(uri=require_env_vars(("DATABASE_URI",))["DATABASE_URI"])
