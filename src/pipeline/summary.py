# src/pipeline/summary.py
"""Comprehensive report synthesis over the four stage results.

Synthesis failures are absorbed: the generator always returns a report,
falling back to one assembled locally from the stage outputs.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime
from typing import Mapping

from docreview.config.settings import Settings
from docreview.core.models import (
    STAGE_ORDER,
    ProviderConfig,
    StageName,
    StageResult,
    SummaryResult,
    TokenUsage,
)
from docreview.llm.base_client import BaseLLMClient
from docreview.llm.errors import ProviderError
from docreview.llm.models import LLMResponse, Message
from docreview.pipeline.extractors import extract_summary
from docreview.pipeline.stages import STAGES
from docreview.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

SUMMARY_STEP = "summary"

SYSTEM_PROMPT = (
    "You are an expert document analyst. From the per-dimension analysis "
    "results, write a complete, professional analysis report suitable for "
    "direct PDF output. Produce only the report body: no opening remarks, no "
    "closing remarks. Start directly with the report title."
)


def make_report_id(now: datetime | None = None) -> str:
    """DOC-ANALYSIS-YYYYMMDD-NNN with NNN random in 000-999."""
    now = now or datetime.now()
    return f"DOC-ANALYSIS-{now:%Y%m%d}-{random.randint(0, 999):03d}"


def _raw_texts(results: Mapping[StageName, StageResult]) -> dict[StageName, str]:
    return {
        stage: results[stage].raw_text if stage in results else ""
        for stage in STAGE_ORDER
    }


def build_summary_prompt(
    results: Mapping[StageName, StageResult],
    report_id: str,
    report_date: str,
    excerpt_chars: int = 300,
) -> list[Message]:
    """System and user messages asking for the final report."""
    sections = "\n\n".join(
        f"{STAGES[stage].title}:\n{text[:excerpt_chars]}..."
        for stage, text in _raw_texts(results).items()
    )
    user = (
        "Based on the following per-dimension analysis results, write a "
        "complete analysis report suitable for PDF output.\n\n"
        f"{sections}\n\n"
        "Requirements:\n"
        "1. Produce only the report body, without opening or closing remarks.\n"
        "2. Start directly with the title.\n"
        "3. Include a title, an executive summary, key findings and recommendations.\n"
        "4. Describe the results of each dimension precisely and professionally.\n"
        "5. Include an overall assessment.\n"
        "6. The report header must contain exactly this information:\n"
        f"   - Report ID: {report_id}\n"
        f"   - Analysis date: {report_date}\n"
        "   - Analyst: AI product document review system\n"
        "7. Never use any other date or report number."
    )
    return [
        Message(role="system", content=SYSTEM_PROMPT),
        Message(role="user", content=user),
    ]


def build_fallback_report(results: Mapping[StageName, StageResult]) -> str:
    """Deterministic report from the first lines of every stage output."""
    parts = [
        "# Document Analysis Report",
        "",
        "## Summary",
        "",
        "The comprehensive report could not be generated because the AI "
        "service call failed. Key findings of each analysis dimension follow.",
    ]
    for stage, text in _raw_texts(results).items():
        parts += ["", f"## {STAGES[stage].title}", extract_summary(text)]
    parts += [
        "",
        "## Overall Assessment",
        "",
        "All analysis dimensions have completed; their results are shown above.",
        "",
        "## Recommendations",
        "",
        "1. Improve the document according to the findings of each dimension.",
        "2. Check the AI service configuration, API key and network connection.",
        "3. Re-run the analysis to obtain the comprehensive report.",
    ]
    return "\n".join(parts)


class SummaryGenerator:
    """Runs the synthesis call under a hard time ceiling.

    Args:
        client: Provider client for the buffered synthesis call.
        settings: Supplies the time ceiling and excerpt length.
    """

    def __init__(
        self,
        client: BaseLLMClient,
        settings: Settings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or Settings()

    async def generate(
        self,
        results: Mapping[StageName, StageResult],
        config: ProviderConfig,
        session_id: str = "",
        call_logger: CallLogger | None = None,
    ) -> SummaryResult:
        """Synthesize the report. Failures of the synthesis call never propagate."""
        report_id = make_report_id()
        messages = build_summary_prompt(
            results,
            report_id=report_id,
            report_date=datetime.now().strftime("%Y-%m-%d"),
            excerpt_chars=self._settings.summary_excerpt_chars,
        )
        timeout_s = self._settings.summary_timeout_s

        try:
            response = await asyncio.wait_for(
                self._client.complete(messages, config), timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            logger.error("Summary generation timed out after %.0fs; using fallback", timeout_s)
            return self._fallback(results, report_id, session_id, call_logger)
        except ProviderError as e:
            logger.error("Summary generation failed: %s; using fallback", e)
            return self._fallback(results, report_id, session_id, call_logger)
        except Exception as e:
            logger.error("Summary generation raised %s: %s; using fallback",
                         type(e).__name__, e, exc_info=True)
            return self._fallback(results, report_id, session_id, call_logger)

        if call_logger is not None:
            call_logger.record(session_id, SUMMARY_STEP, response)
        logger.info("Summary generated: report_id=%s, chars=%d", report_id, len(response.content))
        return SummaryResult(
            summary_text=response.content,
            token_usage=response.token_usage or TokenUsage(),
            report_id=report_id,
        )

    def _fallback(
        self,
        results: Mapping[StageName, StageResult],
        report_id: str,
        session_id: str,
        call_logger: CallLogger | None,
    ) -> SummaryResult:
        text = build_fallback_report(results)
        if call_logger is not None:
            call_logger.record(
                session_id, SUMMARY_STEP, LLMResponse(content=text), status="fallback",
            )
        return SummaryResult(
            summary_text=text,
            token_usage=TokenUsage(),
            report_id=report_id,
            fallback=True,
        )
