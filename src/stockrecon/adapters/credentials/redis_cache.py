"""Redis-backed store of per-tenant catalog credentials."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from stockrecon.config.credentials import DEFAULT_TOKENS_KEY
from stockrecon.domain.errors import CredentialStoreError

from .tokens import TokenEntry, is_token_valid

if TYPE_CHECKING:
    from types import TracebackType

    from stockrecon.config.credentials import CredentialsConfig
    from stockrecon.domain.model import TenantCredential

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TokenStats:
    total: int
    valid: int
    expired: int
    tenants: tuple[int, ...]


class RedisCredentialCache:
    """Read the credential list another process keeps in Redis."""

    def __init__(self, client: aioredis.Redis, *, key: str = DEFAULT_TOKENS_KEY) -> None:
        self._client = client
        self._key = key

    @classmethod
    def from_config(cls, config: CredentialsConfig) -> RedisCredentialCache:
        client = aioredis.from_url(config.redis_url, decode_responses=True)
        return cls(client, key=config.tokens_key)

    async def get_tokens(self) -> list[TenantCredential]:
        try:
            raw_entries = await self._client.lrange(self._key, 0, -1)
        except RedisError as exc:
            log.exception("Could not read credentials from Redis key %s", self._key)
            raise CredentialStoreError("Failed to load tokens") from exc

        credentials: list[TenantCredential] = []
        for raw in raw_entries or ():
            credential = _parse_entry(raw)
            if credential is not None:
                credentials.append(credential)
        log.debug("Loaded %s credentials from %s", len(credentials), self._key)
        return credentials

    async def token_stats(self, now: datetime | None = None) -> TokenStats:
        credentials = await self.get_tokens()
        moment = now or datetime.now(UTC)
        valid = sum(1 for credential in credentials if is_token_valid(credential.token, moment))
        tenants = tuple(dict.fromkeys(credential.tenant_id for credential in credentials))
        return TokenStats(
            total=len(credentials),
            valid=valid,
            expired=len(credentials) - valid,
            tenants=tenants,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RedisCredentialCache:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _parse_entry(raw: str | bytes) -> TenantCredential | None:
    try:
        payload = json.loads(raw)
        return TokenEntry.model_validate(payload).to_domain()
    except (ValueError, ValidationError) as exc:
        log.error("Skipping unreadable credential entry: %s", exc)  # noqa: TRY400
        return None
