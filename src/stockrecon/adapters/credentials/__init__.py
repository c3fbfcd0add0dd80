"""Credential cache adapter."""

from __future__ import annotations

from .redis_cache import RedisCredentialCache, TokenStats
from .tokens import TokenEntry, TokenStatus, decode_token, is_token_valid

__all__ = [
    "RedisCredentialCache",
    "TokenEntry",
    "TokenStats",
    "TokenStatus",
    "decode_token",
    "is_token_valid",
]
