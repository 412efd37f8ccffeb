"""
Peer-observation (360-degree) evaluator.

Scores how the candidate likely comes across to colleagues, managers and
reports, and keeps a free-text observation per answer.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from unified_interview.agents.base import EvaluationContext, ModuleEvaluator, coerce_score_map
from unified_interview.agents.competency import merge_competency_scores
from unified_interview.orchestrator.schemas import (
    PEER_OBSERVATION_DIMENSIONS,
    ModuleKind,
    PeerObservationResults,
)


class PeerObservationExtraction(BaseModel):
    """Peer-perspective scores and observation for one answer."""

    scores: dict[str, float] = Field(..., description="Dimension -> 1-5 score")
    observation: str = Field(default="")

    @field_validator("scores", mode="before")
    @classmethod
    def _normalize_scores(cls, value: Any) -> dict[str, float]:
        return coerce_score_map(value, allowed=PEER_OBSERVATION_DIMENSIONS)

    @field_validator("observation", mode="before")
    @classmethod
    def _observation_text(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""


class PeerObservationEvaluator(ModuleEvaluator[PeerObservationExtraction]):
    """LLM-backed 360-degree behavioral observation."""

    kind = ModuleKind.PEER_OBSERVATION
    extraction_model = PeerObservationExtraction

    ANALYSIS_PROMPT = """Analyse the candidate's answer from a 360-degree assessment perspective:
how would colleagues, reports and managers experience working with this person?

Recent conversation:
{conversation}

Candidate's answer:
"{utterance}"

Score from 1 to 5 only the dimensions the answer gives evidence for:
- teamwork
- communication
- leadership
- adaptability
- collaboration

Also write one short observation about the candidate's behavioral tendencies.

Return a JSON object:
{{
    "scores": {{"<dimension>": <1-5>, ...}},
    "observation": "<short observation>"
}}

Only return valid JSON, no other text."""

    def build_prompt(self, utterance: str, context: EvaluationContext) -> str:
        return self.ANALYSIS_PROMPT.format(conversation=context.conversation, utterance=utterance)

    def merge(
        self,
        current: PeerObservationResults | None,
        update: PeerObservationExtraction,
    ) -> PeerObservationResults:
        results = current.model_copy(deep=True) if current else PeerObservationResults()
        results.scores = merge_competency_scores(results.scores, update.scores)
        if update.observation:
            results.observations.append(update.observation)
        return results

    def placeholder(self) -> PeerObservationResults:
        return PeerObservationResults()
