# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache store ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "redis"] = "memory"
    cache_redis_url: str = ""
    cache_namespace: str = "querycache:"
    cache_socket_timeout_s: float = 5.0
    cache_default_ttl_seconds: int | None = None

    # === Fingerprinting ===
    fingerprint_include_options: bool = True
    fingerprint_hash_keys: bool = False

    # === Store retry ===
    store_retry_attempts: int = 0
    store_retry_base_delay_s: float = 0.05
    store_retry_backoff_factor: float = 2.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_default_ttl_seconds")
    @classmethod
    def validate_default_ttl(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("cache_default_ttl_seconds must be > 0 when set")
        return v

    @field_validator("store_retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("store_retry_attempts must be >= 0")
        return v

    @field_validator("store_retry_base_delay_s", "cache_socket_timeout_s")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if self.store_retry_backoff_factor < 1.0:
            errors.append("STORE_RETRY_BACKOFF_FACTOR must be >= 1.0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-process config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
