"""
Profile-builder evaluator.

Extracts discrete biographical and skill facts and merges them additively
into the candidate profile.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from unified_interview.agents.base import (
    EvaluationContext,
    ModuleEvaluator,
    coerce_str_list,
    merge_unique,
)
from unified_interview.orchestrator.schemas import CandidateProfile, ModuleKind


class ProfileFacts(BaseModel):
    """Facts stated in one message; null when not mentioned."""

    name: str | None = None
    position: str | None = None
    years_of_experience: float | None = None
    skills: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    personal_qualities: list[str] = Field(default_factory=list)

    @field_validator("name", "position", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @field_validator("years_of_experience", mode="before")
    @classmethod
    def _years(cls, value: Any) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            years = float(value)
        except (TypeError, ValueError):
            return None
        return years if years >= 0 else None

    @field_validator("skills", "achievements", "goals", "personal_qualities", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class ProfileExtraction(BaseModel):
    facts: ProfileFacts


class ProfileBuilderEvaluator(ModuleEvaluator[ProfileExtraction]):
    """LLM-backed fact extraction for the candidate profile."""

    kind = ModuleKind.PROFILE
    extraction_model = ProfileExtraction

    EXTRACTION_PROMPT = """Extract facts about the candidate from their latest message.

Known profile so far is irrelevant; report only what THIS message states.

Previous interviewer message:
"{last_question}"

Candidate's message:
"{utterance}"

Return a JSON object:
{{
    "facts": {{
        "name": "<name or null>",
        "position": "<current or desired position or null>",
        "years_of_experience": <number or null>,
        "skills": ["<named skill>", ...],
        "achievements": ["<achievement>", ...],
        "goals": ["<career or personal goal>", ...],
        "personal_qualities": ["<quality>", ...]
    }}
}}

Use null and empty lists for anything not mentioned. Do not guess.
Only return valid JSON, no other text."""

    def build_prompt(self, utterance: str, context: EvaluationContext) -> str:
        return self.EXTRACTION_PROMPT.format(
            last_question=context.last_question or "(none)",
            utterance=utterance,
        )

    def merge(self, current: CandidateProfile | None, update: ProfileExtraction) -> CandidateProfile:
        profile = current.model_copy(deep=True) if current else CandidateProfile()
        facts = update.facts

        if facts.name is not None:
            profile.name = facts.name
        if facts.position is not None:
            profile.position = facts.position
        if facts.years_of_experience is not None:
            profile.years_of_experience = facts.years_of_experience

        profile.skills = merge_unique(profile.skills, facts.skills)
        profile.achievements = merge_unique(profile.achievements, facts.achievements)
        profile.goals = merge_unique(profile.goals, facts.goals)
        profile.personal_qualities = merge_unique(profile.personal_qualities, facts.personal_qualities)
        return profile

    def placeholder(self) -> CandidateProfile:
        return CandidateProfile()
