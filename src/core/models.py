# src/core/models.py
"""Core domain models: stages, token usage, stage results, analysis sessions.

JSON output of every model uses camelCase keys; Python code uses snake_case.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase while accepting snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# === STAGES ===


class StageName(str, Enum):
    """Analysis stage kinds, in no particular order (see STAGE_ORDER)."""

    STRUCTURE = "structure"
    DESIGN = "design"
    LOGIC = "logic"
    RISK = "risk"


STAGE_ORDER: tuple[StageName, ...] = (
    StageName.STRUCTURE,
    StageName.DESIGN,
    StageName.LOGIC,
    StageName.RISK,
)

COMPLETE: Literal["complete"] = "complete"


class ProviderKind(str, Enum):
    """Closed set of provider selections."""

    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"


# === TOKEN USAGE ===


class TokenUsage(CamelModel):
    """Provider-reported counters for one call, or an aggregate of calls."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total: int = 0

    @classmethod
    def from_counts(cls, prompt_tokens: int, completion_tokens: int) -> TokenUsage:
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total=prompt_tokens + completion_tokens,
        )

    @classmethod
    def from_provider(cls, usage: dict[str, Any] | None) -> TokenUsage | None:
        """Map an OpenAI-style ``usage`` object. Returns None when absent.

        ``total`` is derived from the two counters, so it always equals
        prompt_tokens + completion_tokens.
        """
        if not isinstance(usage, dict):
            return None
        prompt = int(usage.get("prompt_tokens") or 0)
        completion = int(usage.get("completion_tokens") or 0)
        return cls.from_counts(prompt, completion)


# === PROVIDER CONFIG ===


class ProviderConfig(CamelModel):
    """Provider selection and credential captured for a session."""

    provider: ProviderKind
    api_key: str = Field(repr=False, exclude=True)
    custom_api_url: str | None = None
    custom_model: str | None = None

    def with_overrides(
        self,
        provider: ProviderKind | str | None = None,
        api_key: str | None = None,
        custom_api_url: str | None = None,
        custom_model: str | None = None,
    ) -> ProviderConfig:
        """Copy where every non-empty override replaces the captured value."""
        return ProviderConfig(
            provider=ProviderKind(provider) if provider else self.provider,
            api_key=api_key or self.api_key,
            custom_api_url=custom_api_url or self.custom_api_url,
            custom_model=custom_model or self.custom_model,
        )


# === STAGE RESULTS ===


class StageResult(CamelModel):
    """Output of one analysis stage."""

    stage: StageName
    raw_text: str = Field(alias="analysis")
    token_usage: TokenUsage | None = None
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StructureResult(StageResult):
    summary: str = ""


class DesignResult(StageResult):
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class LogicResult(StageResult):
    inconsistencies: list[str] = Field(default_factory=list)
    corrections: list[str] = Field(default_factory=list)


class RiskResult(StageResult):
    risk_level: int = 2
    mitigation: list[str] = Field(default_factory=list)


class SummaryResult(CamelModel):
    """Output of the Summary Generator. Never null, even on fallback."""

    summary_text: str
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    report_id: str
    fallback: bool = False


# === SESSION ===


class StageAlreadyCompletedError(RuntimeError):
    """Raised when a stage result would be written twice in one session."""


_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """Opaque id: file_<epoch ms>_<9 random base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"file_{int(time.time() * 1000)}_{suffix}"


class AnalysisSession(BaseModel):
    """In-memory record of one document's progress through the stages.

    Only the controller mutates a session; the store owns its lifetime.
    """

    id: str = Field(default_factory=generate_session_id, frozen=True)
    document_text: str = Field(frozen=True, repr=False)
    file_name: str = ""
    provider_config: ProviderConfig
    stage_results: dict[StageName, SerializeAsAny[StageResult]] = Field(default_factory=dict)
    completed_stages: list[StageName] = Field(default_factory=list)
    current_stage: StageName | Literal["complete"] = StageName.STRUCTURE
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_access_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_completed(self, stage: StageName) -> bool:
        return stage in self.stage_results

    def pending_stages(self) -> list[StageName]:
        """Stages still to run, in fixed order."""
        return [s for s in STAGE_ORDER if not self.is_completed(s)]

    def mark_started(self, stage: StageName) -> None:
        self.current_stage = stage

    def record_stage(self, result: StageResult) -> None:
        """Write a stage result. A stage is written at most once."""
        if self.is_completed(result.stage):
            raise StageAlreadyCompletedError(
                f"Stage '{result.stage.value}' already completed for session {self.id}"
            )
        self.stage_results[result.stage] = result
        self.completed_stages.append(result.stage)
        self.current_stage = result.stage

    def mark_complete(self) -> None:
        self.current_stage = COMPLETE

    def touch(self) -> None:
        self.last_access_at = datetime.now(timezone.utc)
