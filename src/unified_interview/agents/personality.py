"""
Personality-typing evaluator.

Accumulates pressure on the four opposing trait axes from language cues.
The final pass turns the accumulated pressure into a four-letter type, which
is then described in work terms: preferences, team role, stress factors and
motivators.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator

from unified_interview.agents.base import EvaluationContext, ModuleEvaluator, clamp, coerce_str_list
from unified_interview.models.llm_client import CollaboratorUnavailableError, LLMClientBase, Message
from unified_interview.models.response_parser import MalformedExtractionError, parse_structured
from unified_interview.orchestrator.schemas import PERSONALITY_AXES, ModuleKind, PersonalityProfile

logger = logging.getLogger(__name__)

POLES: tuple[str, ...] = tuple(pole for axis in PERSONALITY_AXES for pole in axis)

# Upper bound on pressure a single utterance may add to one pole.
MAX_INDICATOR = 3.0

TRAIT_NAMES: dict[str, str] = {
    "extraversion": "E",
    "extroversion": "E",
    "introversion": "I",
    "sensing": "S",
    "intuition": "N",
    "thinking": "T",
    "feeling": "F",
    "judging": "J",
    "perceiving": "P",
}


def pole_for(key: Any) -> str | None:
    """Map a pole letter or full trait name to its pole letter."""
    name = str(key).strip()
    if name.lower() in TRAIT_NAMES:
        return TRAIT_NAMES[name.lower()]
    pole = name.upper()
    return pole if pole in POLES else None


class PersonalityExtraction(BaseModel):
    """Trait-pole indicators found in one utterance."""

    indicators: dict[str, float] = Field(..., description="Pole letter -> pressure (0-3)")
    evidence: str = Field(default="")

    @field_validator("indicators", mode="before")
    @classmethod
    def _normalize_indicators(cls, value: Any) -> dict[str, float]:
        if not isinstance(value, dict):
            raise ValueError("indicators must be an object")
        result: dict[str, float] = {}
        for raw_key, raw_value in value.items():
            pole = pole_for(raw_key)
            if pole is None or raw_value is None or isinstance(raw_value, bool):
                continue
            try:
                result[pole] = clamp(float(raw_value), 0.0, MAX_INDICATOR)
            except (TypeError, ValueError):
                continue
        return result

    @field_validator("evidence", mode="before")
    @classmethod
    def _evidence_text(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""


def resolve_type(scores: dict[str, float]) -> tuple[str | None, float]:
    """
    Convert accumulated pole pressure into a best-fit type.

    Each axis picks its stronger pole (ties go to the first pole). Confidence
    is the mean per-axis margin, 0-100.

    Returns:
        (type code, confidence); the type is None when no pressure exists.
    """
    if not any(scores.get(pole, 0.0) > 0 for pole in POLES):
        return None, 0.0

    letters: list[str] = []
    margins: list[float] = []
    for first, second in PERSONALITY_AXES:
        a = scores.get(first, 0.0)
        b = scores.get(second, 0.0)
        letters.append(first if a >= b else second)
        total = a + b
        margins.append(abs(a - b) / total if total > 0 else 0.0)

    confidence = round(sum(margins) / len(margins) * 100, 1)
    return "".join(letters), confidence


class TypeInsight(BaseModel):
    """Work-style description of a four-letter type."""

    description: str = Field(..., min_length=1, description="Two or three sentence portrait")
    work_preferences: list[str] = Field(default_factory=list)
    team_role: str = Field(..., min_length=1, description="Best-fit role in a team, one short phrase")
    stress_factors: list[str] = Field(default_factory=list)
    motivators: list[str] = Field(default_factory=list)

    @field_validator("description", "team_role", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("work_preferences", "stress_factors", "motivators", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


# Canned profiles per temperament, used when the collaborator cannot describe a type.
TEMPERAMENT_INSIGHTS: dict[str, TypeInsight] = {
    "NT": TypeInsight(
        description="Analytical and strategic; looks for the underlying system and improves it.",
        work_preferences=["Autonomous work", "Strategic planning", "Complex problems"],
        team_role="Strategist and analyst",
        stress_factors=["Micromanagement", "Inefficient processes", "Frequent interruptions"],
        motivators=["Autonomy", "Intellectual challenge", "Long-term impact"],
    ),
    "NF": TypeInsight(
        description="Idealistic and people-oriented; driven by meaning and by helping others grow.",
        work_preferences=["Creative projects", "Variety of tasks", "Working with people"],
        team_role="Idea generator and motivator",
        stress_factors=["Routine work", "Rigid constraints", "Isolation from people"],
        motivators=["Recognition", "Creative freedom", "Developing people"],
    ),
    "SJ": TypeInsight(
        description="Dependable and organised; values clear procedures and finishing what was started.",
        work_preferences=["Clear procedures", "Stable environment", "Detailed work"],
        team_role="Executor and coordinator",
        stress_factors=["Constant change", "Uncertainty", "Chaotic environment"],
        motivators=["Stability", "Recognition for reliability", "Clear standards"],
    ),
    "SP": TypeInsight(
        description="Practical and adaptable; at their best solving concrete problems as they appear.",
        work_preferences=["Hands-on tasks", "Fast feedback", "Freedom to improvise"],
        team_role="Troubleshooter and fixer",
        stress_factors=["Heavy bureaucracy", "Long planning without action", "Monotony"],
        motivators=["Tangible results", "Variety", "Freedom to act"],
    ),
}

ORIENTATION_PREFERENCES: dict[str, str] = {
    "E": "Team collaboration",
    "I": "Focused independent work",
}


def canned_insight(type_code: str) -> TypeInsight:
    """Build a type description from the type letters alone."""
    code = type_code.upper()
    temperament = code[1] + (code[2] if code[1] == "N" else code[3])
    base = TEMPERAMENT_INSIGHTS[temperament]
    orientation = ORIENTATION_PREFERENCES[code[0]]
    return base.model_copy(
        update={
            "description": f"{code}: {base.description}",
            "work_preferences": [*base.work_preferences, orientation],
        },
        deep=True,
    )


class PersonalityEvaluator(ModuleEvaluator[PersonalityExtraction]):
    """LLM-backed detection of trait-axis cues."""

    kind = ModuleKind.PERSONALITY
    extraction_model = PersonalityExtraction

    ANALYSIS_PROMPT = """You are a psychologist who analyses conversation for personality-type cues.

Trait axes:
- E (energised by people, prefers group work) vs I (prefers solitude, needs time to reflect)
- S (practical, facts, details, present) vs N (possibilities, future, abstract ideas)
- T (logic, objectivity, fairness) vs F (empathy, harmony, other people's feelings)
- J (organised, plans ahead, likes structure) vs P (flexible, spontaneous, adapts to change)

Recent conversation:
{conversation}

Latest candidate message:
"{utterance}"

For each pole the message gives evidence for, assign pressure from 0 to 3.
Omit poles with no evidence.

Return a JSON object:
{{
    "indicators": {{"E": <0-3>, "N": <0-3>, ...}},
    "evidence": "<the language cue that justifies the indicators>"
}}

Only return valid JSON, no other text."""

    TYPE_PROMPT = """You are a career psychologist describing a personality type at work.

Personality type: {type_code}

Return a JSON object:
{{
    "description": "<two or three sentences about how this type works>",
    "work_preferences": ["<preference>", "<preference>", "<preference>", "<preference>"],
    "team_role": "<best-fit role in a team, one short phrase>",
    "stress_factors": ["<factor>", "<factor>", "<factor>"],
    "motivators": ["<motivator>", "<motivator>", "<motivator>"]
}}

Only return valid JSON, no other text."""

    def __init__(self, llm_client: LLMClientBase, temperature: float = 0.3) -> None:
        super().__init__(llm_client, temperature=temperature)
        self._insights: dict[str, TypeInsight] = {}

    def build_prompt(self, utterance: str, context: EvaluationContext) -> str:
        return self.ANALYSIS_PROMPT.format(conversation=context.conversation, utterance=utterance)

    def merge(self, current: PersonalityProfile | None, update: PersonalityExtraction) -> PersonalityProfile:
        profile = current.model_copy(deep=True) if current else PersonalityProfile()
        for pole, pressure in update.indicators.items():
            profile.scores[pole] = round(profile.scores.get(pole, 0.0) + pressure, 2)
        if update.evidence:
            profile.evidence.append(update.evidence)
        return profile

    def placeholder(self) -> PersonalityProfile:
        return PersonalityProfile()

    @staticmethod
    def finalize(profile: PersonalityProfile | None) -> PersonalityProfile:
        """Return a copy of the profile with its type and confidence resolved."""
        finalized = profile.model_copy(deep=True) if profile else PersonalityProfile()
        finalized.type_code, finalized.confidence = resolve_type(finalized.scores)
        return finalized

    async def describe_type(self, type_code: str) -> TypeInsight:
        """
        Describe a type in work terms.

        Collaborator answers are cached per type code; failures fall back to
        the canned temperament profile and are not cached.
        """
        cached = self._insights.get(type_code)
        if cached is not None:
            return cached

        try:
            payload = await self._llm_client.chat_with_json(
                messages=[Message(role="system", content=self.TYPE_PROMPT.format(type_code=type_code))],
                temperature=self._temperature,
            )
            insight = parse_structured(payload, TypeInsight)
        except (CollaboratorUnavailableError, MalformedExtractionError) as e:
            logger.warning(f"Type description for {type_code} fell back to canned profile: {e}")
            return canned_insight(type_code)
        except Exception as e:
            logger.error(f"Unexpected {type(e).__name__} describing {type_code}, using canned profile: {e}")
            return canned_insight(type_code)

        self._insights[type_code] = insight
        return insight

    async def enrich(self, profile: PersonalityProfile) -> PersonalityProfile:
        """Return a copy of a finalized profile with its type description attached."""
        if not profile.type_code:
            return profile
        insight = await self.describe_type(profile.type_code)
        return profile.model_copy(update=insight.model_dump(), deep=True)
