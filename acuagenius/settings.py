"""Centralised settings for AcuaGenius, loaded from env / .env."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AcuaSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ACUA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- general ---
    app_name: str = "AcuaGenius"
    env: str = "dev"
    debug: bool = False

    # --- conversation state ---
    conversation_backend: Literal["memory", "redis"] = "memory"
    context_ttl_seconds: int = Field(default=15 * 60, gt=0)
    sweep_interval_seconds: int = Field(default=5 * 60, gt=0)

    # --- cache (Redis), only used by the redis backend ---
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "acuagenius:conv"

    # --- assistant behaviour ---
    default_location_name: str = "Barranquilla, Atlántico"
    quick_options_enabled: bool = True


@lru_cache
def get_settings() -> AcuaSettings:
    return AcuaSettings()
