# src/pipeline/stages.py
"""Stage table: prompts and result builders for each analysis stage.

Stages are looked up by StageName; there is no name-built dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from docreview.core.models import (
    DesignResult,
    LogicResult,
    RiskResult,
    StageName,
    StageResult,
    StructureResult,
    TokenUsage,
)
from docreview.llm.models import Message
from docreview.pipeline import extractors

_NO_PREAMBLE = (
    "Output the analysis directly. Do not add any opening remarks or "
    "introductory text."
)


@dataclass(frozen=True)
class StageSpec:
    """Static definition of one analysis stage."""

    stage: StageName
    title: str
    system_prompt: str
    user_prompt: str
    build_result: Callable[[str, TokenUsage | None], StageResult]

    def render_user_prompt(self, document_text: str) -> str:
        return f"{self.user_prompt}\n\n{document_text}"


def _structure_result(text: str, usage: TokenUsage | None) -> StageResult:
    return StructureResult(
        stage=StageName.STRUCTURE,
        raw_text=text,
        token_usage=usage,
        summary=extractors.extract_summary(text),
    )


def _design_result(text: str, usage: TokenUsage | None) -> StageResult:
    return DesignResult(
        stage=StageName.DESIGN,
        raw_text=text,
        token_usage=usage,
        issues=extractors.extract_issues(text),
        recommendations=extractors.extract_recommendations(text),
    )


def _logic_result(text: str, usage: TokenUsage | None) -> StageResult:
    return LogicResult(
        stage=StageName.LOGIC,
        raw_text=text,
        token_usage=usage,
        inconsistencies=extractors.extract_inconsistencies(text),
        corrections=extractors.extract_corrections(text),
    )


def _risk_result(text: str, usage: TokenUsage | None) -> StageResult:
    return RiskResult(
        stage=StageName.RISK,
        raw_text=text,
        token_usage=usage,
        risk_level=extractors.extract_risk_level(text),
        mitigation=extractors.extract_mitigation(text),
    )


STAGES: dict[StageName, StageSpec] = {
    StageName.STRUCTURE: StageSpec(
        stage=StageName.STRUCTURE,
        title="Document structure analysis",
        system_prompt=(
            "You are an expert in document structure analysis. Analyze the "
            "structure of the following product document: identify its section "
            "organization, content hierarchy and overall architecture.\n\n"
            "Present the result in this format:\n"
            "1. Document outline\n"
            "2. Section hierarchy analysis\n"
            "3. Evaluation of content organization\n"
            "4. Suggestions for improving the structure\n"
            "5. Overall score (1-10, higher means a more complete structure)\n\n"
            + _NO_PREAMBLE
        ),
        user_prompt="Analyze the structure of the following document:",
        build_result=_structure_result,
    ),
    StageName.DESIGN: StageSpec(
        stage=StageName.DESIGN,
        title="Design defect review",
        system_prompt=(
            "You are an expert UI/UX designer. Analyze the design defects in "
            "the following product document, covering interface design, user "
            "experience and interaction logic problems.\n\n"
            "Analyze along these dimensions:\n"
            "1. Interface design consistency\n"
            "2. User experience fluency\n"
            "3. Soundness of interaction logic\n"
            "4. Concrete issues and recommended improvements\n"
            "5. Overall score (1-10, higher means a more complete design)\n\n"
            + _NO_PREAMBLE
        ),
        user_prompt="Analyze the design defects in the following document:",
        build_result=_design_result,
    ),
    StageName.LOGIC: StageSpec(
        stage=StageName.LOGIC,
        title="Logical consistency analysis",
        system_prompt=(
            "You are an expert in logical analysis. Check the following product "
            "document for logical consistency and soundness.\n\n"
            "Focus on:\n"
            "1. Consistency between descriptions\n"
            "2. Feasibility of the technical approach\n"
            "3. Soundness of the business flows\n"
            "4. Contradictions found and suggested corrections\n"
            "5. Overall score (1-10, higher means more rigorous logic)\n\n"
            + _NO_PREAMBLE
        ),
        user_prompt="Analyze the logical consistency of the following document:",
        build_result=_logic_result,
    ),
    StageName.RISK: StageSpec(
        stage=StageName.RISK,
        title="Risk assessment",
        system_prompt=(
            "You are an expert in risk assessment. Evaluate the technical "
            "implementation risks and business impact risks described in the "
            "following product document.\n\n"
            "Assess along these dimensions:\n"
            "1. Technical complexity risk\n"
            "2. Implementation feasibility risk\n"
            "3. Business impact risk\n"
            "4. Risk level (high, medium or low) and mitigation measures\n"
            "5. Overall score (1-10, higher means lower risk)\n\n"
            + _NO_PREAMBLE
        ),
        user_prompt="Assess the risks in the following document:",
        build_result=_risk_result,
    ),
}


def build_messages(stage: StageName, document_text: str, max_chars: int) -> list[Message]:
    """System and user messages for ``stage`` over a bounded document prefix."""
    spec = STAGES[stage]
    return [
        Message(role="system", content=spec.system_prompt),
        Message(role="user", content=spec.render_user_prompt(document_text[:max_chars])),
    ]
