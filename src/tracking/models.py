# src/tracking/models.py
"""Tracking domain models: one record per provider call."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class LLMCallRecord(BaseModel):
    """Individual provider call log entry."""

    call_id: str
    timestamp: datetime
    session_id: str
    step: str
    provider: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    usage_reported: bool = True
    latency_ms: int
    status: Literal["success", "fallback", "failed"]
