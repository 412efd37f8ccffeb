"""
Common extraction contract for the module evaluators.

Every evaluator runs on every user utterance. It asks the LLM for one
structured payload, validates it, and merges it into the session's
accumulator for its module. Failures never reset accumulated state.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from unified_interview.models.llm_client import LLMClientBase, Message
from unified_interview.models.response_parser import parse_structured
from unified_interview.orchestrator.schemas import Difficulty, InterviewPhase, ModuleKind

if TYPE_CHECKING:
    from unified_interview.orchestrator.interview_state import InterviewState

logger = logging.getLogger(__name__)

ExtractionT = TypeVar("ExtractionT", bound=BaseModel)

_INJECTION_PATTERNS = (
    "ignore previous instructions",
    "ignore all instructions",
    "disregard previous",
    "forget everything",
    "new instructions:",
    "system:",
    "```json",
    "```python",
    "<|",
    "|>",
)


def sanitize_for_prompt(text: str, max_length: int = 1200) -> str:
    """
    Sanitize candidate text before embedding it in a prompt.

    Removes common instruction-override patterns and truncates.
    """
    if not text:
        return ""

    sanitized = text
    for pattern in _INJECTION_PATTERNS:
        sanitized = re.sub(re.escape(pattern), "[FILTERED]", sanitized, flags=re.IGNORECASE)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."

    return sanitized.strip()


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def merge_scale_score(old: int | None, new: float) -> int:
    """
    Merge a 1-5 observation into an existing score.

    The first observation is stored as-is; later ones are averaged with the
    stored value. Inputs and results are clamped to [1, 5].
    """
    new_value = clamp(float(new), 1, 5)
    if old is None:
        return int(clamp(round_half_up(new_value), 1, 5))
    return int(clamp(round_half_up((clamp(old, 1, 5) + new_value) / 2), 1, 5))


def merge_unique(existing: list[str], additions: list[str]) -> list[str]:
    """Append items not already present (case-insensitive), keeping order."""
    seen = {item.strip().lower() for item in existing}
    merged = list(existing)
    for item in additions:
        cleaned = item.strip() if isinstance(item, str) else ""
        if cleaned and cleaned.lower() not in seen:
            merged.append(cleaned)
            seen.add(cleaned.lower())
    return merged


@dataclass(frozen=True)
class EvaluationContext:
    """Read-only view of the session handed to evaluators for one turn."""

    session_id: str
    difficulty: Difficulty
    phase: InterviewPhase
    focus_areas: tuple[str, ...] = ()
    last_question: str | None = None
    conversation: str = ""
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_state(cls, state: InterviewState, max_messages: int = 6) -> EvaluationContext:
        return cls(
            session_id=state.session_id,
            difficulty=state.settings.difficulty,
            phase=state.current_phase,
            focus_areas=tuple(state.settings.focus_areas),
            last_question=state.last_assistant_message(),
            conversation=sanitize_for_prompt(state.format_conversation(max_messages), max_length=4000),
        )


class ModuleEvaluator(ABC, Generic[ExtractionT]):
    """
    Base class for the five module evaluators.

    Subclasses declare the module kind, the pydantic model the LLM payload
    must validate against, a prompt builder, and how a validated payload is
    merged into the accumulator.
    """

    kind: ClassVar[ModuleKind]
    extraction_model: ClassVar[type[BaseModel]]

    def __init__(self, llm_client: LLMClientBase, temperature: float = 0.3) -> None:
        """
        Initialize the evaluator.

        Args:
            llm_client: Collaborator used for extraction calls.
            temperature: Sampling temperature for extraction.
        """
        self._llm_client = llm_client
        self._temperature = temperature

    @abstractmethod
    def build_prompt(self, utterance: str, context: EvaluationContext) -> str:
        """Build the extraction prompt for one utterance."""
        ...

    @abstractmethod
    def merge(self, current: Any, update: ExtractionT) -> Any:
        """Return the new accumulator value; `current` may be None."""
        ...

    @abstractmethod
    def placeholder(self) -> Any:
        """Minimal accumulator seeded after the first failure."""
        ...

    async def extract(self, utterance: str, context: EvaluationContext) -> ExtractionT:
        """
        Run the extraction call for one utterance.

        Raises:
            CollaboratorUnavailableError: If the LLM could not be reached.
            MalformedExtractionError: If the output does not match the schema.
        """
        prompt = self.build_prompt(sanitize_for_prompt(utterance), context)
        payload = await self._llm_client.chat_with_json(
            messages=[Message(role="system", content=prompt)],
            temperature=self._temperature,
        )
        return parse_structured(payload, self.extraction_model)  # type: ignore[return-value]

    def apply(self, state: InterviewState, update: ExtractionT) -> None:
        """Merge a validated extraction into the session."""
        merged = self.merge(state.get_accumulator(self.kind), update)
        state.set_accumulator(self.kind, merged)

    def handle_failure(self, state: InterviewState, error: BaseException) -> None:
        """
        Absorb a failed extraction.

        Accumulated state is left untouched; a placeholder is seeded only if
        the module has never produced anything.
        """
        count = state.record_extraction_failure(self.kind)
        logger.warning(
            f"{self.kind.value} extraction failed for session {state.session_id} "
            f"({type(error).__name__}: {error}); anomaly count {count}"
        )
        if state.get_accumulator(self.kind) is None:
            state.set_accumulator(self.kind, self.placeholder())


def coerce_str_list(value: Any) -> list[str]:
    """Keep only non-empty strings from an LLM-provided list."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_score_map(value: Any, allowed: tuple[str, ...] | None = None) -> dict[str, float]:
    """
    Normalize a {name: score} mapping from LLM output.

    Keys are lower-cased with spaces and dashes turned into underscores.
    Entries with null or non-numeric values are dropped, as are keys outside
    `allowed` when given.
    """
    if not isinstance(value, dict):
        raise ValueError("scores must be an object")
    result: dict[str, float] = {}
    for raw_key, raw_score in value.items():
        key = re.sub(r"[\s\-]+", "_", str(raw_key).strip().lower())
        if allowed is not None and key not in allowed:
            continue
        if raw_score is None or isinstance(raw_score, bool):
            continue
        try:
            result[key] = float(raw_score)
        except (TypeError, ValueError):
            continue
    return result
