"""
Professional-knowledge evaluator.

Scores each answer against the technical Q&A criteria and keeps a running
average overall and per skill tag.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

from unified_interview.agents.base import (
    EvaluationContext,
    ModuleEvaluator,
    clamp,
    coerce_str_list,
    merge_unique,
)
from unified_interview.orchestrator.schemas import ModuleKind, ProfessionalProfile

logger = logging.getLogger(__name__)

GENERAL_SKILL_TAG = "general"


class ProfessionalExtraction(BaseModel):
    """Structured evaluation of one answer."""

    score: float = Field(..., description="Answer quality, 0-100")
    relevant: bool = Field(default=True, description="Whether the answer carries professional evidence")
    skill_tags: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        if value is None or isinstance(value, bool):
            raise ValueError("score must be a number")
        try:
            return clamp(float(value), 0.0, 100.0)
        except (TypeError, ValueError) as e:
            raise ValueError(f"score must be a number, got {value!r}") from e

    @field_validator("skill_tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str]:
        return [tag.lower() for tag in coerce_str_list(value)]

    @field_validator("strengths", "weaknesses", "recommendations", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class ProfessionalEvaluator(ModuleEvaluator[ProfessionalExtraction]):
    """LLM-backed scoring of technical answers."""

    kind = ModuleKind.PROFESSIONAL
    extraction_model = ProfessionalExtraction

    EVALUATION_PROMPT = """You are an expert technical interviewer evaluating a candidate.

Interview difficulty: {difficulty}
Focus areas: {focus_areas}

Previous interviewer message:
"{last_question}"

Candidate's answer:
"{utterance}"

Evaluation criteria:
1. Technical correctness (40%)
2. Completeness (30%)
3. Clarity (20%)
4. Practical grounding (10%)

Answers about hobbies or everyday life can still reveal professional skills.
If the answer carries no professional evidence at all, set "relevant" to false.

Return a JSON object:
{{
    "score": <0-100>,
    "relevant": <true|false>,
    "skill_tags": ["<skill or technology the answer demonstrates>", ...],
    "strengths": ["<strength>", ...],
    "weaknesses": ["<weakness>", ...],
    "recommendations": ["<recommendation>", ...]
}}

Be objective but constructive.
Only return valid JSON, no other text."""

    def build_prompt(self, utterance: str, context: EvaluationContext) -> str:
        return self.EVALUATION_PROMPT.format(
            difficulty=context.difficulty.value,
            focus_areas=", ".join(context.focus_areas) or "Not specified",
            last_question=context.last_question or "(none)",
            utterance=utterance,
        )

    def merge(self, current: ProfessionalProfile | None, update: ProfessionalExtraction) -> ProfessionalProfile:
        profile = current.model_copy(deep=True) if current else ProfessionalProfile()

        if update.relevant:
            n = profile.evaluation_count
            profile.overall_score = round((profile.overall_score * n + update.score) / (n + 1), 1)
            profile.evaluation_count = n + 1

            for tag in update.skill_tags or [GENERAL_SKILL_TAG]:
                samples = profile.skill_samples.get(tag, 0)
                previous = profile.skill_scores.get(tag, 0.0)
                profile.skill_scores[tag] = round((previous * samples + update.score) / (samples + 1), 1)
                profile.skill_samples[tag] = samples + 1
        else:
            logger.debug("Answer carried no professional evidence; score not merged")

        profile.strengths = merge_unique(profile.strengths, update.strengths)
        profile.weaknesses = merge_unique(profile.weaknesses, update.weaknesses)
        profile.recommendations = merge_unique(profile.recommendations, update.recommendations)
        return profile

    def placeholder(self) -> ProfessionalProfile:
        return ProfessionalProfile()
