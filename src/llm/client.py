# src/llm/client.py
"""OpenAI-compatible chat-completions client over httpx.

Serves the preset providers and caller-supplied endpoints alike. Every
outbound call goes through the shared retry policy and a local per-attempt
time ceiling.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, TypeVar

import httpx

from docreview.config.settings import Settings
from docreview.core.models import ProviderConfig, TokenUsage
from docreview.llm.base_client import BaseLLMClient, DeltaCallback
from docreview.llm.errors import (
    ProviderConnectionError,
    ProviderError,
    ProviderHTTPError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from docreview.llm.models import LLMResponse, Message, ProviderEndpoint
from docreview.llm.providers import resolve_endpoint
from docreview.llm.retry import RetryPolicy, with_retry
from docreview.llm.stream_decoder import LineDecoder, StreamAccumulator, iter_events

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderClient(BaseLLMClient):
    """Concrete provider client.

    Args:
        settings: Application settings (presets, timeouts, retry policy).
        retry_policy: Overrides the policy derived from settings.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._retry = retry_policy or RetryPolicy(
            max_attempts=self._settings.retry_max_attempts,
            delay_s=self._settings.retry_delay_s,
        )
        self._transport = transport
        self._timeout_s = self._settings.provider_timeout_s

    # --- Public API ---

    async def complete(
        self,
        messages: list[Message],
        config: ProviderConfig,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        endpoint = resolve_endpoint(config, self._settings)
        payload = self._payload(endpoint, messages, max_tokens, stream=False)
        headers = self._headers(config)
        self._log_start(endpoint, messages, "buffered")

        t0 = time.monotonic()
        try:
            content, usage = await with_retry(
                lambda: self._bounded(self._post_buffered(endpoint, payload, headers)),
                self._retry,
                label=f"{endpoint.provider} completion",
            )
        except ProviderError as e:
            logger.error("Provider call failed: provider=%s, error=%s", endpoint.provider, e)
            raise
        return self._finish(endpoint, content, usage, t0)

    async def stream(
        self,
        messages: list[Message],
        config: ProviderConfig,
        on_delta: DeltaCallback | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        endpoint = resolve_endpoint(config, self._settings)
        payload = self._payload(endpoint, messages, max_tokens, stream=True)
        headers = self._headers(config)
        self._log_start(endpoint, messages, "streamed")

        t0 = time.monotonic()
        try:
            content, usage = await with_retry(
                lambda: self._bounded(self._post_streamed(endpoint, payload, headers, on_delta)),
                self._retry,
                label=f"{endpoint.provider} stream",
            )
        except ProviderError as e:
            logger.error("Provider stream failed: provider=%s, error=%s", endpoint.provider, e)
            raise
        return self._finish(endpoint, content, usage, t0)

    # --- Request building ---

    def _payload(
        self,
        endpoint: ProviderEndpoint,
        messages: list[Message],
        max_tokens: int | None,
        stream: bool,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messages": [m.model_dump() for m in messages],
            "max_tokens": max_tokens or self._settings.llm_max_tokens,
            "temperature": self._settings.llm_temperature,
            "stream": stream,
        }
        if endpoint.model:
            payload["model"] = endpoint.model
        if stream and endpoint.is_preset and self._settings.stream_include_usage:
            payload["stream_options"] = {"include_usage": True}
        return payload

    @staticmethod
    def _headers(config: ProviderConfig) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport)

    # --- Attempts ---

    async def _bounded(self, coro: Awaitable[T]) -> T:
        """Enforce the per-attempt ceiling locally."""
        try:
            return await asyncio.wait_for(coro, timeout=self._timeout_s)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Provider call exceeded {self._timeout_s:.0f}s"
            ) from e

    async def _post_buffered(
        self,
        endpoint: ProviderEndpoint,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> tuple[str, TokenUsage | None]:
        async with self._http() as client:
            try:
                resp = await client.post(endpoint.url, json=payload, headers=headers)
            except httpx.TimeoutException as e:
                raise ProviderTimeoutError(f"Provider timed out: {e}") from e
            except httpx.HTTPError as e:
                raise ProviderConnectionError(f"Cannot reach AI provider: {e}") from e

        if not resp.is_success:
            raise ProviderHTTPError(resp.status_code, resp.text)

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(f"Malformed provider response: {e}") from e
        if not isinstance(content, str):
            raise ProviderResponseError("Provider response has no text content")
        return content, self._usage(data.get("usage"))

    async def _post_streamed(
        self,
        endpoint: ProviderEndpoint,
        payload: dict[str, Any],
        headers: dict[str, str],
        on_delta: DeltaCallback | None,
    ) -> tuple[str, TokenUsage | None]:
        acc = StreamAccumulator()
        decoder = LineDecoder()
        async with self._http() as client:
            try:
                async with client.stream(
                    "POST", endpoint.url, json=payload, headers=headers,
                ) as resp:
                    if not resp.is_success:
                        body = (await resp.aread()).decode("utf-8", errors="replace")
                        raise ProviderHTTPError(resp.status_code, body)

                    async for chunk in resp.aiter_bytes():
                        if await self._consume(decoder.feed(chunk), acc, on_delta):
                            break
            except httpx.TimeoutException as e:
                raise ProviderTimeoutError(f"Provider stream timed out: {e}") from e
            except httpx.HTTPError as e:
                raise ProviderConnectionError(f"AI stream error: {e}") from e

        if not acc.done:
            await self._consume(decoder.flush(), acc, on_delta)
        return acc.content, self._usage(acc.usage)

    @staticmethod
    def _usage(raw: Any) -> TokenUsage | None:
        try:
            return TokenUsage.from_provider(raw)
        except (ValueError, TypeError) as e:
            raise ProviderResponseError(f"Malformed usage in provider response: {e}") from e

    @staticmethod
    async def _consume(
        lines: list[str],
        acc: StreamAccumulator,
        on_delta: DeltaCallback | None,
    ) -> bool:
        """Apply the events of ``lines``. Returns True at the terminal sentinel."""
        for event in iter_events(lines):
            acc.apply(event)
            if event.done:
                return True
            if event.delta and on_delta is not None:
                await on_delta(event.delta)
        return False

    # --- Logging ---

    @staticmethod
    def _log_start(endpoint: ProviderEndpoint, messages: list[Message], mode: str) -> None:
        logger.info(
            "Calling AI provider: provider=%s, model=%s, mode=%s, messages=%d, prompt_chars=%d",
            endpoint.provider,
            endpoint.model or "(endpoint default)",
            mode,
            len(messages),
            sum(len(m.content) for m in messages),
        )

    @staticmethod
    def _finish(
        endpoint: ProviderEndpoint,
        content: str,
        usage: TokenUsage | None,
        t0: float,
    ) -> LLMResponse:
        latency = int((time.monotonic() - t0) * 1000)
        logger.info(
            "AI provider call succeeded: provider=%s, latency_ms=%d, tokens=%s",
            endpoint.provider, latency, usage.total if usage else "n/a",
        )
        return LLMResponse(
            content=content,
            token_usage=usage,
            model=endpoint.model or "",
            provider=endpoint.provider,
            latency_ms=latency,
        )
