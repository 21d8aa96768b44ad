# src/config/settings.py
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: HTTP surface,
provider presets, retry and timeout policy, session expiry and logging.
"""

from __future__ import annotations

import json
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

    # === HTTP ===
    app_name: str = "docreview"
    host: str = "0.0.0.0"
    port: int = 3001
    api_prefix: str = ""
    cors_origins: str = '["*"]'

    # === Provider presets ===
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"
    openai_default_model: str = "gpt-4o-mini"
    deepseek_api_url: str = "https://api.deepseek.com/v1/chat/completions"
    deepseek_default_model: str = "deepseek-chat"

    # === Provider calls ===
    llm_temperature: float = 0.3
    llm_max_tokens: int = 4000
    provider_timeout_s: float = 60.0
    retry_max_attempts: int = 3
    retry_delay_s: float = 2.0
    stream_include_usage: bool = True

    # === Pipeline ===
    max_document_chars: int = 50_000
    summary_timeout_s: float = 120.0
    summary_excerpt_chars: int = 300

    # === Sessions ===
    session_ttl_s: float = 3600.0
    session_sweep_interval_s: float = 60.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """Prefix is either empty or '/segment' without a trailing slash."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = f"/{v}"
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retry_max_attempts must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.provider_timeout_s <= 0:
            errors.append("PROVIDER_TIMEOUT_S must be > 0")
        if self.summary_timeout_s <= 0:
            errors.append("SUMMARY_TIMEOUT_S must be > 0")
        if self.retry_delay_s < 0:
            errors.append("RETRY_DELAY_S must be >= 0")
        if self.max_document_chars <= 0:
            errors.append("MAX_DOCUMENT_CHARS must be > 0")
        if self.session_ttl_s < 0:
            errors.append("SESSION_TTL_S must be >= 0")
        if self.session_sweep_interval_s <= 0:
            errors.append("SESSION_SWEEP_INTERVAL_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from a JSON list or a comma-separated string."""
        raw = self.cors_origins.strip()
        if raw.startswith("["):
            try:
                return [str(o) for o in json.loads(raw)]
            except json.JSONDecodeError:
                pass
        return [o.strip() for o in raw.strip("[]").split(",") if o.strip()]


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
