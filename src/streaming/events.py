# src/streaming/events.py
"""Stream event models.

Every event carries ``type``, ``stage``, ``fileId`` and ``timestamp``; the
wire form is camelCase JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import Field, SerializeAsAny

from docreview.core.models import CamelModel, StageName, StageResult, TokenUsage


class BaseEvent(CamelModel):
    """Fields shared by every event."""

    type: str
    stage: str | None = None
    file_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StageStartedEvent(BaseEvent):
    type: Literal["stage_started"] = "stage_started"
    stage: StageName
    message: str


class StageProgressEvent(BaseEvent):
    type: Literal["stage_progress"] = "stage_progress"
    stage: StageName
    chunk: str


class StageCompletedEvent(BaseEvent):
    type: Literal["stage_completed"] = "stage_completed"
    stage: StageName
    message: str
    analysis_result: SerializeAsAny[StageResult]
    token_usage: TokenUsage | None = None


class CompleteEvent(BaseEvent):
    """Terminal success event."""

    type: Literal["complete"] = "complete"
    stage: Literal["complete"] = "complete"
    data: dict[StageName, SerializeAsAny[StageResult]]
    comprehensive_summary: str
    total_token_usage: TokenUsage
    report_id: str


class ErrorEvent(BaseEvent):
    """Terminal failure event."""

    type: Literal["error"] = "error"
    success: Literal[False] = False
    message: str
    error: str


TERMINAL_EVENTS = (CompleteEvent, ErrorEvent)
