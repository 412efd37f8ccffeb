"""
Competency evaluator.

Maps cues in each answer onto the fixed competency taxonomy. Scores are on
a 1-5 scale and merged with a clamped running average.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from unified_interview.agents.base import (
    EvaluationContext,
    ModuleEvaluator,
    coerce_score_map,
    merge_scale_score,
)
from unified_interview.orchestrator.schemas import COMPETENCY_TAXONOMY, ModuleKind


class CompetencyExtraction(BaseModel):
    """Competency evidence found in one answer."""

    scores: dict[str, float] = Field(..., description="Competency id -> 1-5 score")
    evidence: str = Field(default="")

    @field_validator("scores", mode="before")
    @classmethod
    def _normalize_scores(cls, value: Any) -> dict[str, float]:
        return coerce_score_map(value, allowed=COMPETENCY_TAXONOMY)


def merge_competency_scores(current: dict[str, int] | None, observed: dict[str, float]) -> dict[str, int]:
    """Merge observed scores into the stored map without touching unobserved ones."""
    merged = dict(current or {})
    for competency, score in observed.items():
        merged[competency] = merge_scale_score(merged.get(competency), score)
    return merged


class CompetencyEvaluator(ModuleEvaluator[CompetencyExtraction]):
    """LLM-backed competency scoring."""

    kind = ModuleKind.COMPETENCY
    extraction_model = CompetencyExtraction

    EVALUATION_PROMPT = """You are assessing a candidate's competencies from what they say in an interview.

Competencies (use these ids exactly):
- communication: clarity, listening, explaining ideas
- leadership: guiding others, taking ownership of outcomes
- productivity: delivering results, meeting deadlines
- reliability: keeping commitments, consistency
- initiative: self-driven action and learning
- problem_solving: analysing and resolving problems
- teamwork: working with and supporting colleagues
- adaptability: handling change and uncertainty
- innovation: new ideas and approaches
- customer_focus: understanding and serving users or clients

Interview difficulty: {difficulty}

Previous interviewer message:
"{last_question}"

Candidate's answer:
"{utterance}"

Score ONLY the competencies the answer gives evidence for, from 1 (weak) to 5 (strong).
Mentions of teammates suggest teamwork, deadlines suggest productivity or reliability,
learning on one's own suggests initiative.

Return a JSON object:
{{
    "scores": {{"<competency id>": <1-5>, ...}},
    "evidence": "<short justification>"
}}

Return an empty "scores" object if there is no evidence.
Only return valid JSON, no other text."""

    def build_prompt(self, utterance: str, context: EvaluationContext) -> str:
        return self.EVALUATION_PROMPT.format(
            difficulty=context.difficulty.value,
            last_question=context.last_question or "(none)",
            utterance=utterance,
        )

    def merge(self, current: dict[str, int] | None, update: CompetencyExtraction) -> dict[str, int]:
        return merge_competency_scores(current, update.scores)

    def placeholder(self) -> dict[str, int]:
        return {}
