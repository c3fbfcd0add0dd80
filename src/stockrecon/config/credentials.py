"""Credential cache configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars

DEFAULT_TOKENS_KEY = "tokens_mm"


@dataclass(frozen=True, slots=True)
class CredentialsConfig:
    redis_url: str
    tokens_key: str = DEFAULT_TOKENS_KEY


def get_credentials_config() -> CredentialsConfig:
    values = require_env_vars(("REDIS_URL",))
    return CredentialsConfig(
        redis_url=values["REDIS_URL"],
        tokens_key=optional_env_var("CATALOG_TOKENS_KEY", DEFAULT_TOKENS_KEY),
    )
