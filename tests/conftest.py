# tests/conftest.py
"""Shared test fixtures for all unit and integration tests.

Provides a scripted fake provider client, settings tuned for fast tests,
sample documents and collection helpers. No network I/O.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Callable

import pytest

from docreview.config.settings import Settings, load_settings
from docreview.core.models import ProviderConfig, ProviderKind, StageName, TokenUsage
from docreview.llm.base_client import BaseLLMClient, DeltaCallback
from docreview.llm.errors import ProviderError, ProviderHTTPError
from docreview.llm.models import LLMResponse, Message
from docreview.pipeline.controller import StageController
from docreview.pipeline.stages import STAGES
from docreview.session.store import SessionStore
from docreview.streaming.emitter import StreamEmitter
from docreview.streaming.events import BaseEvent


SAMPLE_DOCUMENT = (
    "Product overview\n"
    "The app lets users book meeting rooms from their phone.\n\n"
    "Booking flow\n"
    "Users pick a room, a time slot and confirm. Rooms can be booked for 30 minutes.\n\n"
    "Cancellation\n"
    "Bookings can be cancelled at any time. Rooms can be booked for 2 hours at most.\n"
)

STAGE_OUTPUTS: dict[StageName, str] = {
    StageName.STRUCTURE: (
        "1. Document outline: overview, booking flow, cancellation\n"
        "2. Section hierarchy is flat\n"
        "3. Content organization is clear but thin\n"
        "4. Add a section on notifications\n"
        "5. Overall score: 6\n"
        "6. Extra line not in summary"
    ),
    StageName.DESIGN: (
        "- Issue: no feedback is shown after confirming a booking\n"
        "- Recommend adding a confirmation screen with booking details\n"
        "- Score: 5"
    ),
    StageName.LOGIC: (
        "1. Booking duration is inconsistent between sections (30 min vs 2 hours)\n"
        "2. Correct the duration rules so both sections agree\n"
    ),
    StageName.RISK: (
        "Risk level: medium\n"
        "- Mitigation: add server-side validation of booking duration\n"
    ),
}


def stage_of(messages: list[Message]) -> StageName:
    """Identify the stage a message list was built for."""
    for stage, spec in STAGES.items():
        if messages and messages[0].content == spec.system_prompt:
            return stage
    raise AssertionError("messages do not belong to any stage")


class FakeLLMClient(BaseLLMClient):
    """Scripted provider client.

    Streams each stage's canned output in two deltas and answers the
    summary call with ``summary_text``.
    """

    def __init__(
        self,
        outputs: dict[StageName, str] | None = None,
        usages: dict[StageName, TokenUsage | None] | None = None,
        fail_stages: set[StageName] | None = None,
        summary_text: str = "# Document Analysis Report\n\nAll good.",
        summary_usage: TokenUsage | None = None,
        summary_error: ProviderError | None = None,
        summary_delay_s: float = 0.0,
    ) -> None:
        self.outputs = outputs or dict(STAGE_OUTPUTS)
        self.usages = usages
        self.fail_stages = fail_stages or set()
        self.summary_text = summary_text
        self.summary_usage = summary_usage or TokenUsage.from_counts(200, 100)
        self.summary_error = summary_error
        self.summary_delay_s = summary_delay_s
        self.stages_called: list[StageName] = []
        self.configs: list[ProviderConfig] = []
        self.complete_calls = 0

    def usage_for(self, stage: StageName) -> TokenUsage | None:
        if self.usages is None:
            return TokenUsage.from_counts(100, 50)
        return self.usages.get(stage)

    async def stream(
        self,
        messages: list[Message],
        config: ProviderConfig,
        on_delta: DeltaCallback | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        stage = stage_of(messages)
        self.stages_called.append(stage)
        self.configs.append(config)
        if stage in self.fail_stages:
            raise ProviderHTTPError(502, "upstream unavailable")
        text = self.outputs[stage]
        half = len(text) // 2
        if on_delta is not None:
            for part in (text[:half], text[half:]):
                if part:
                    await on_delta(part)
        return LLMResponse(
            content=text, token_usage=self.usage_for(stage),
            model="gpt-4o-mini", provider="openai", latency_ms=5,
        )

    async def complete(
        self,
        messages: list[Message],
        config: ProviderConfig,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        self.complete_calls += 1
        if self.summary_delay_s:
            await asyncio.sleep(self.summary_delay_s)
        if self.summary_error is not None:
            raise self.summary_error
        return LLMResponse(
            content=self.summary_text, token_usage=self.summary_usage,
            model="gpt-4o-mini", provider="openai", latency_ms=5,
        )


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    """Settings with no retry delay and short ceilings."""
    return load_settings(
        _env_file=None,
        retry_delay_s=0.0,
        summary_timeout_s=5.0,
        session_ttl_s=3600.0,
        log_format="text",
    )


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(provider=ProviderKind.OPENAI, api_key="sk-test-key")


@pytest.fixture
def fake_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def make_controller(settings: Settings, store: SessionStore) -> Callable[..., StageController]:
    def _make(client: BaseLLMClient) -> StageController:
        return StageController(client, store, settings)
    return _make


@pytest.fixture
def sample_document() -> str:
    return SAMPLE_DOCUMENT


@pytest.fixture
def sample_document_b64() -> str:
    return base64.b64encode(SAMPLE_DOCUMENT.encode("utf-8")).decode("ascii")


async def collect_events(emitter: StreamEmitter) -> list[BaseEvent]:
    """Close ``emitter`` and return everything it queued."""
    emitter.close()
    return [event async for event in emitter.events()]


def non_progress(events: list[BaseEvent]) -> list[BaseEvent]:
    return [e for e in events if e.type != "stage_progress"]


@pytest.fixture
def make_fake_client() -> type[FakeLLMClient]:
    """The FakeLLMClient class, for tests that script their own outputs."""
    return FakeLLMClient


@pytest.fixture
def collect() -> Callable:
    return collect_events


@pytest.fixture
def drop_progress() -> Callable:
    return non_progress
