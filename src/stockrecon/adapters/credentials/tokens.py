"""Cached credential entries and unverified inspection of their JWT payloads."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from stockrecon.domain.model import TenantCredential

log = getLogger(__name__)


class TokenEntry(BaseModel):
    """One ``{"empId": ..., "token": ...}`` element of the credential list."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tenant_id: int = Field(alias="empId")
    token: str = Field(min_length=1)

    def to_domain(self) -> TenantCredential:
        return TenantCredential(tenant_id=self.tenant_id, token=self.token)


class TokenClaims(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tenant_id: int = Field(default=0, alias="empId")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")
    terminal: str | None = None

    @field_validator("tenant_id", mode="before")
    @classmethod
    def _tenant_or_zero(cls, value: object) -> object:
        return value or 0

    @field_validator("expires_at", mode="before")
    @classmethod
    def _parse_expiry(cls, value: object) -> object:
        # numeric expiries are epoch milliseconds
        if isinstance(value, int | float) and not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value / 1000, tz=UTC)
            except (OverflowError, OSError) as exc:
                raise ValueError(f"expiresAt out of range: {value}") from exc
        if isinstance(value, str) and value.endswith("Z"):
            return value[:-1] + "+00:00"
        return value

    @field_validator("terminal", mode="before")
    @classmethod
    def _terminal_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


@dataclass(slots=True, frozen=True)
class TokenStatus:
    is_valid: bool
    tenant_id: int
    expires_at: datetime | None = None
    terminal: str | None = None


INVALID_TOKEN = TokenStatus(is_valid=False, tenant_id=0)


def _base64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded)


def decode_token(token: str) -> TokenStatus:
    """Read the payload segment of a JWT without verifying its signature.

    Any token that cannot be read yields ``INVALID_TOKEN`` instead of raising.
    """

    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        return INVALID_TOKEN
    try:
        payload = json.loads(_base64url_decode(parts[1]))
        claims = TokenClaims.model_validate(payload)
    except (binascii.Error, UnicodeDecodeError, ValueError, ValidationError) as exc:
        log.warning("Could not decode credential token: %s", exc)
        return INVALID_TOKEN

    expires_at = claims.expires_at
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return TokenStatus(
        is_valid=True,
        tenant_id=claims.tenant_id,
        expires_at=expires_at,
        terminal=claims.terminal,
    )


def is_token_valid(token: str, now: datetime | None = None) -> bool:
    """Return True when the token decodes and its expiry lies after ``now``."""

    status = decode_token(token)
    if not status.is_valid or status.expires_at is None:
        return False
    return status.expires_at > (now or datetime.now(UTC))
