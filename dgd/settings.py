"""Centralised settings for dgd, loaded from env / .env."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class DgdSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DGD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- general ---
    app_name: str = "Dojo Genesis Desktop"
    debug: bool = False

    # --- HTTP ---
    host: str = "127.0.0.1"
    port: int = 8080

    # --- self-update ---
    product_name: str = "dgd"
    update_url: str = "https://api.github.com/repos/TresPies-source/ollama/releases/latest"
    update_timeout_seconds: float = 30.0
    update_download_timeout_seconds: float = 600.0
    update_max_retries: int = 3
    update_startup_delay_seconds: float = 5.0
    update_check_on_startup: bool = True


@lru_cache
def get_settings() -> DgdSettings:
    return DgdSettings()
