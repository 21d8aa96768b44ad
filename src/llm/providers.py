# src/llm/providers.py
"""Provider presets and endpoint resolution.

Resolution happens before any network I/O, so configuration mistakes fail
fast with ProviderConfigError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from docreview.config.settings import Settings
from docreview.core.models import ProviderConfig, ProviderKind
from docreview.llm.errors import ProviderConfigError
from docreview.llm.models import ProviderEndpoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderPreset:
    """Default endpoint and model of a fixed provider."""

    url: str
    default_model: str


def preset_table(settings: Settings) -> dict[ProviderKind, ProviderPreset]:
    """Fixed presets, keyed by provider kind. ``custom`` has no preset."""
    return {
        ProviderKind.OPENAI: ProviderPreset(
            url=settings.openai_api_url, default_model=settings.openai_default_model,
        ),
        ProviderKind.DEEPSEEK: ProviderPreset(
            url=settings.deepseek_api_url, default_model=settings.deepseek_default_model,
        ),
    }


def resolve_endpoint(config: ProviderConfig, settings: Settings) -> ProviderEndpoint:
    """Resolve the URL and model for a call.

    Caller-supplied URL and model override the preset values.

    Raises:
        ProviderConfigError: Unknown provider, or ``custom`` without a URL.
    """
    try:
        kind = ProviderKind(config.provider)
    except ValueError as e:
        raise ProviderConfigError(
            f"Unsupported AI provider: {config.provider!r}. "
            f"Available: {', '.join(k.value for k in ProviderKind)}"
        ) from e

    if not config.api_key:
        raise ProviderConfigError("An API key is required")

    custom_url = (config.custom_api_url or "").strip()
    custom_model = (config.custom_model or "").strip() or None

    if kind is ProviderKind.CUSTOM:
        if not custom_url:
            raise ProviderConfigError("The custom provider requires customApiUrl")
        return ProviderEndpoint(
            provider=kind.value, url=custom_url, model=custom_model, is_preset=False,
        )

    preset = preset_table(settings)[kind]
    endpoint = ProviderEndpoint(
        provider=kind.value,
        url=custom_url or preset.url,
        model=custom_model or preset.default_model,
        is_preset=True,
    )
    logger.debug(
        "Resolved provider endpoint: provider=%s, model=%s, custom_url=%s",
        endpoint.provider, endpoint.model, bool(custom_url),
    )
    return endpoint
