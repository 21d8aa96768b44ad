# src/tracking/call_logger.py
"""Provider call logging: records every call of a run segment.

Records are kept in memory and can be written out as JSON Lines for
post-run analysis.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from docreview.llm.models import LLMResponse
from docreview.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates provider call records."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(
        self,
        session_id: str,
        step: str,
        response: LLMResponse,
        status: str = "success",
    ) -> LLMCallRecord:
        """Record a provider call.

        Args:
            session_id: Session the call belongs to.
            step: Stage name, or "summary".
            response: Normalized provider response.
            status: Call status (success, fallback, failed).

        Returns:
            The recorded LLMCallRecord.
        """
        usage = response.token_usage
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            session_id=session_id,
            step=step,
            provider=response.provider,
            model=response.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total if usage else 0,
            usage_reported=usage is not None,
            latency_ms=response.latency_ms,
            status=status,
        )
        self._records.append(record)
        logger.debug(
            "Recorded call: step=%s, tokens=%d, latency_ms=%d",
            step, record.total_tokens, record.latency_ms,
        )
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        """All recorded calls."""
        return list(self._records)

    def for_session(self, session_id: str) -> list[LLMCallRecord]:
        """Records of one session, in call order."""
        return [r for r in self._records if r.session_id == session_id]

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        """Total number of provider calls."""
        return len(self._records)

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
