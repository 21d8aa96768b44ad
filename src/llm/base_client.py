# src/llm/base_client.py
"""Abstract provider client interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from docreview.core.models import ProviderConfig
from docreview.llm.errors import ProviderError
from docreview.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)

DeltaCallback = Callable[[str], Awaitable[None]]


class BaseLLMClient(ABC):
    """Chat-completion calls in buffered and streamed form."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        config: ProviderConfig,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Buffered completion: one request, one JSON response."""

    @abstractmethod
    async def stream(
        self,
        messages: list[Message],
        config: ProviderConfig,
        on_delta: DeltaCallback | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Streamed completion.

        ``on_delta`` is awaited for every non-empty content delta; the full
        response is returned once the stream ends.
        """

    async def validate_api_key(self, config: ProviderConfig) -> bool:
        """Send the provider a tiny prompt. Never raises provider errors."""
        ping = [Message(role="user", content='Reply with exactly: "OK"')]
        try:
            response = await self.complete(ping, config, max_tokens=10)
        except ProviderError as e:
            logger.warning("API key validation failed for %s: %s", config.provider.value, e)
            return False
        return bool(response.content.strip())
