# src/llm/models.py
"""LLM-specific types: Message, LLMResponse, ProviderEndpoint."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from docreview.core.models import TokenUsage


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class LLMResponse(BaseModel):
    """Normalized response from a chat-completions call.

    ``token_usage`` is None when the provider reported no usage.
    """

    content: str
    token_usage: TokenUsage | None = None
    model: str = ""
    provider: str = ""
    latency_ms: int = 0


class ProviderEndpoint(BaseModel):
    """Resolved target of an outbound call."""

    provider: str
    url: str
    model: str | None = None
    is_preset: bool = True
