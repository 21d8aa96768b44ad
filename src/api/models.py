# src/api/models.py
"""HTTP request and response models. JSON bodies use camelCase keys."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field

from docreview.core.models import CamelModel, ProviderConfig, ProviderKind


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProviderSelection(CamelModel):
    """Provider fields shared by the analyze and validate-key bodies."""

    provider: ProviderKind
    api_key: str = Field(min_length=1, repr=False)
    custom_api_url: str | None = None
    custom_model: str | None = None

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            provider=self.provider,
            api_key=self.api_key,
            custom_api_url=self.custom_api_url or None,
            custom_model=self.custom_model or None,
        )


class AnalyzeRequest(ProviderSelection):
    """Body of POST /analyze."""

    file_content: str = Field(min_length=1, repr=False)
    file_name: str = "document"


class ContinueRequest(CamelModel):
    """Body of POST /analyze/continue. Provider fields override for this run only."""

    file_id: str = Field(min_length=1)
    provider: ProviderKind | None = None
    api_key: str | None = Field(default=None, repr=False)
    custom_api_url: str | None = None
    custom_model: str | None = None

    def overrides(self) -> dict[str, Any]:
        """Non-empty provider overrides, keyed by ProviderConfig field name."""
        values = {
            "provider": self.provider,
            "api_key": self.api_key,
            "custom_api_url": self.custom_api_url,
            "custom_model": self.custom_model,
        }
        return {k: v for k, v in values.items() if v}


class ValidateKeyRequest(ProviderSelection):
    """Body of POST /validate-key."""


class ValidateKeyResponse(CamelModel):
    success: Literal[True] = True
    valid: bool
    timestamp: datetime = Field(default_factory=_now)


class HealthResponse(CamelModel):
    success: Literal[True] = True
    message: str
    version: str
    timestamp: datetime = Field(default_factory=_now)


class ErrorResponse(CamelModel):
    """Envelope of every non-streamed error."""

    success: Literal[False] = False
    message: str
    error: str = ""
    timestamp: datetime = Field(default_factory=_now)
