# tests/unit/streaming/test_unit_events.py
"""Tests for streaming/events.py wire form."""

from __future__ import annotations

from docreview.core.models import StageName, TokenUsage
from docreview.pipeline.stages import STAGES
from docreview.streaming.events import (
    TERMINAL_EVENTS,
    CompleteEvent,
    ErrorEvent,
    StageCompletedEvent,
    StageStartedEvent,
)


def test_started_wire():
    wire = StageStartedEvent(file_id="f1", stage=StageName.RISK, message="Starting: Risk").to_wire()
    assert wire["type"] == "stage_started"
    assert wire["stage"] == "risk"
    assert wire["fileId"] == "f1"


def test_completed_keeps_subclass_fields():
    result = STAGES[StageName.DESIGN].build_result(
        "- Issue: the search box is hidden on mobile", TokenUsage.from_counts(3, 4),
    )
    wire = StageCompletedEvent(
        file_id="f1", stage=StageName.DESIGN, message="Completed",
        analysis_result=result, token_usage=result.token_usage,
    ).to_wire()
    assert wire["analysisResult"]["issues"] == ["Issue: the search box is hidden on mobile"]
    assert wire["analysisResult"]["analysis"].startswith("- Issue")
    assert wire["tokenUsage"]["total"] == 7


def test_completed_without_usage_omits_field():
    result = STAGES[StageName.LOGIC].build_result("All consistent.", None)
    wire = StageCompletedEvent(
        file_id="f1", stage=StageName.LOGIC, message="Completed", analysis_result=result,
    ).to_wire()
    assert "tokenUsage" not in wire


def test_complete_wire():
    result = STAGES[StageName.RISK].build_result("Risk level: low", None)
    wire = CompleteEvent(
        file_id="f1",
        data={StageName.RISK: result},
        comprehensive_summary="# Report",
        total_token_usage=TokenUsage.from_counts(1, 2),
        report_id="DOC-ANALYSIS-20240101-042",
    ).to_wire()
    assert wire["stage"] == "complete"
    assert wire["data"]["risk"]["riskLevel"] == 1
    assert wire["comprehensiveSummary"] == "# Report"
    assert wire["totalTokenUsage"] == {"promptTokens": 1, "completionTokens": 2, "total": 3}
    assert wire["reportId"] == "DOC-ANALYSIS-20240101-042"


def test_error_wire():
    wire = ErrorEvent(file_id="f1", stage="design", message="failed", error="HTTP 500").to_wire()
    assert wire == {
        "type": "error",
        "stage": "design",
        "fileId": "f1",
        "timestamp": wire["timestamp"],
        "success": False,
        "message": "failed",
        "error": "HTTP 500",
    }


def test_terminal_events():
    assert CompleteEvent in TERMINAL_EVENTS
    assert ErrorEvent in TERMINAL_EVENTS
    assert StageStartedEvent not in TERMINAL_EVENTS
