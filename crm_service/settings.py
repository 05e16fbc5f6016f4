from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Identity-provider settings live in `crm_service.jwks_auth.config` so that
      package stays standalone.
    - Override via `APP_*` env vars.
    """

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    log_level: str = "INFO"
    auth_log_level: str | None = None
    jwks_warmup: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
