"""Configuration from environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PROVIDER_URL = "http://127.0.0.1:54321/auth/v1"
JWKS_PATH = "/.well-known/jwks.json"


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _getenv_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class JwksAuthConfig:
    """
    Identity-provider / JWKS configuration from environment.

    Optional (all have defaults):
        AUTH_PROVIDER_URL: Base URL of the identity provider; the key set is
            read from ``{AUTH_PROVIDER_URL}/.well-known/jwks.json``.
        JWKS_URL: Full key-set URL; overrides the derived one.
        JWKS_CACHE_TTL_SECONDS: How long a fetched key set is fresh (default 3600).
        JWKS_FETCH_TIMEOUT_SECONDS: Timeout for the key-set download (default 10).
        JWKS_MIN_REFRESH_INTERVAL_SECONDS: Minimum gap between downloads triggered
            by unknown ``kid`` values (default 30; 0 disables it).
        CLOCK_SKEW_SECONDS: Seconds of tolerance for exp/nbf (default 0).
    """

    provider_url: str
    jwks_url: str | None  # if None, derived from provider_url
    jwks_cache_ttl_seconds: int
    jwks_fetch_timeout_seconds: int
    jwks_min_refresh_interval_seconds: int
    clock_skew_seconds: int

    def __post_init__(self) -> None:
        if self.jwks_cache_ttl_seconds <= 0:
            raise ValueError("JWKS_CACHE_TTL_SECONDS must be positive")
        if self.jwks_fetch_timeout_seconds <= 0:
            raise ValueError("JWKS_FETCH_TIMEOUT_SECONDS must be positive")

    @property
    def jwks_uri(self) -> str:
        if self.jwks_url:
            return self.jwks_url
        return f"{self.provider_url.rstrip('/')}{JWKS_PATH}"

    @classmethod
    def from_environ(cls) -> JwksAuthConfig:
        provider = _strip_or_none(_getenv("AUTH_PROVIDER_URL")) or DEFAULT_PROVIDER_URL
        return cls(
            provider_url=provider,
            jwks_url=_strip_or_none(_getenv("JWKS_URL")),
            jwks_cache_ttl_seconds=_getenv_int("JWKS_CACHE_TTL_SECONDS", 3600),
            jwks_fetch_timeout_seconds=_getenv_int("JWKS_FETCH_TIMEOUT_SECONDS", 10),
            jwks_min_refresh_interval_seconds=max(0, _getenv_int("JWKS_MIN_REFRESH_INTERVAL_SECONDS", 30)),
            clock_skew_seconds=max(0, _getenv_int("CLOCK_SKEW_SECONDS", 0)),
        )


def _strip_or_none(s: str | None) -> str | None:
    if s is None:
        return None
    t = s.strip()
    return t if t else None
