"""Reconciliation defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_TENANTS = (2, 3)


@dataclass(frozen=True, slots=True)
class SyncConfig:
    tenants: tuple[int, ...] = DEFAULT_TENANTS


def parse_tenants(raw: str) -> tuple[int, ...]:
    tenants: list[int] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if not value:
            continue
        try:
            tenant = int(value)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid tenant id: {value!r}") from exc
        if tenant <= 0:
            raise ConfigurationError(f"Invalid tenant id: {value!r}")
        if tenant not in tenants:
            tenants.append(tenant)
    if not tenants:
        raise ConfigurationError("No tenants configured")
    return tuple(tenants)


def get_sync_config() -> SyncConfig:
    raw = optional_env_var("SYNC_TENANTS", ",".join(str(t) for t in DEFAULT_TENANTS))
    return SyncConfig(tenants=parse_tenants(raw))
