"""
Interview state management.

Wraps the serializable session snapshot with the operations the engine is
allowed to perform on it, and enforces the aggregate's invariants.
"""

from datetime import datetime, timezone
from typing import Any

from unified_interview.orchestrator.phases import advance
from unified_interview.orchestrator.question_cache import QuestionCache
from unified_interview.orchestrator.schemas import (
    BehaviorLogEntry,
    CandidateProfile,
    ChatMessage,
    Difficulty,
    InterviewModule,
    InterviewPhase,
    InterviewStyle,
    MessageRole,
    ModuleKind,
    PeerObservationResults,
    PersonalityProfile,
    ProfessionalProfile,
    SessionSettings,
    SessionSnapshot,
    SessionStatus,
    TurnKind,
)

# Target questions per module at middle difficulty.
BASE_TARGET_QUESTIONS: dict[InterviewStyle, dict[ModuleKind, int]] = {
    InterviewStyle.QUICK: {
        ModuleKind.PROFESSIONAL: 3,
        ModuleKind.PERSONALITY: 2,
        ModuleKind.COMPETENCY: 2,
        ModuleKind.PEER_OBSERVATION: 2,
        ModuleKind.PROFILE: 1,
    },
    InterviewStyle.FOCUSED: {
        ModuleKind.PROFESSIONAL: 5,
        ModuleKind.PERSONALITY: 4,
        ModuleKind.COMPETENCY: 3,
        ModuleKind.PEER_OBSERVATION: 3,
        ModuleKind.PROFILE: 2,
    },
    InterviewStyle.COMPREHENSIVE: {
        ModuleKind.PROFESSIONAL: 8,
        ModuleKind.PERSONALITY: 6,
        ModuleKind.COMPETENCY: 5,
        ModuleKind.PEER_OBSERVATION: 5,
        ModuleKind.PROFILE: 3,
    },
}

DIFFICULTY_ADJUSTMENT: dict[Difficulty, int] = {
    Difficulty.JUNIOR: -1,
    Difficulty.MIDDLE: 0,
    Difficulty.SENIOR: 1,
}

# Module order is the priority order.
MODULE_NAMES: dict[ModuleKind, str] = {
    ModuleKind.PROFESSIONAL: "Professional knowledge interview",
    ModuleKind.PERSONALITY: "Personality typing",
    ModuleKind.COMPETENCY: "Competency assessment",
    ModuleKind.PEER_OBSERVATION: "360-degree peer observation",
    ModuleKind.PROFILE: "Candidate profile",
}

_ACCUMULATOR_FIELDS: dict[ModuleKind, str] = {
    ModuleKind.PROFESSIONAL: "professional_profile",
    ModuleKind.PERSONALITY: "personality_profile",
    ModuleKind.COMPETENCY: "competency_scores",
    ModuleKind.PEER_OBSERVATION: "peer_observation_results",
    ModuleKind.PROFILE: "candidate_profile",
}


class SessionCompletedError(RuntimeError):
    """Raised when a completed session is asked to change."""


def target_questions(kind: ModuleKind, settings: SessionSettings) -> int:
    """
    Number of questions a module needs under the given settings.

    Difficulty only shifts the professional track.
    """
    base = BASE_TARGET_QUESTIONS[settings.style][kind]
    if kind == ModuleKind.PROFESSIONAL:
        base += DIFFICULTY_ADJUSTMENT[settings.difficulty]
    return max(1, base)


def build_modules(settings: SessionSettings) -> list[InterviewModule]:
    """Create the fixed, priority-ordered module list for a new session."""
    return [
        InterviewModule(
            name=MODULE_NAMES[kind],
            kind=kind,
            target_questions=target_questions(kind, settings),
            priority=priority,
        )
        for priority, kind in enumerate(MODULE_NAMES, start=1)
    ]


class InterviewState:
    """
    Manages the mutable state of an interview session.

    The message log is append-only, module status only moves forward, and
    once the session is completed every mutator raises SessionCompletedError.
    """

    def __init__(
        self,
        snapshot: SessionSnapshot,
        history_size: int = 6,
        cache_ttl_seconds: float = 300.0,
    ) -> None:
        """
        Initialize interview state.

        Args:
            snapshot: Session data to wrap (taken over, not copied).
            history_size: Length of the focus-module history buffer.
            cache_ttl_seconds: TTL for the per-session reply cache.
        """
        kinds = [m.kind for m in snapshot.modules]
        if len(kinds) != len(set(kinds)):
            raise ValueError("A session must have exactly one module per kind")

        self._data = snapshot
        self._history_size = history_size
        self._question_cache = QuestionCache(ttl_seconds=cache_ttl_seconds)

    @classmethod
    def create(
        cls,
        user_id: str,
        settings: SessionSettings | None = None,
        history_size: int = 6,
        cache_ttl_seconds: float = 300.0,
    ) -> "InterviewState":
        """Create a fresh session in the `setup` status."""
        settings = settings or SessionSettings()
        snapshot = SessionSnapshot(
            user_id=user_id,
            settings=settings,
            modules=build_modules(settings),
        )
        return cls(snapshot, history_size=history_size, cache_ttl_seconds=cache_ttl_seconds)

    # Read access

    @property
    def session_id(self) -> str:
        """Get the unique session identifier."""
        return self._data.id

    @property
    def user_id(self) -> str:
        return self._data.user_id

    @property
    def settings(self) -> SessionSettings:
        return self._data.settings

    @property
    def status(self) -> SessionStatus:
        return self._data.status

    @property
    def is_complete(self) -> bool:
        """Check if the session is completed."""
        return self._data.status == SessionStatus.COMPLETED

    @property
    def current_phase(self) -> InterviewPhase:
        return self._data.current_phase

    @property
    def modules(self) -> list[InterviewModule]:
        """Get the modules in priority order (copies)."""
        return [m.model_copy() for m in self._data.modules]

    @property
    def messages(self) -> list[ChatMessage]:
        """Get the full message log (copy)."""
        return list(self._data.messages)

    @property
    def user_message_count(self) -> int:
        return self._data.user_message_count

    @property
    def last_turn_kind(self) -> TurnKind | None:
        return self._data.last_turn_kind

    @property
    def question_history(self) -> list[ModuleKind]:
        """Focus-module kinds of the most recent question-bearing turns."""
        return list(self._data.question_history)

    @property
    def question_cache(self) -> QuestionCache:
        return self._question_cache

    @property
    def professional_profile(self) -> ProfessionalProfile | None:
        return self._data.professional_profile

    @property
    def personality_profile(self) -> PersonalityProfile | None:
        return self._data.personality_profile

    @property
    def competency_scores(self) -> dict[str, int] | None:
        return self._data.competency_scores

    @property
    def peer_observation_results(self) -> PeerObservationResults | None:
        return self._data.peer_observation_results

    @property
    def candidate_profile(self) -> CandidateProfile | None:
        return self._data.candidate_profile

    @property
    def behavior_log(self) -> list[BehaviorLogEntry]:
        return list(self._data.behavior_log)

    @property
    def risk_flags(self) -> list[str]:
        return list(self._data.risk_flags)

    @property
    def extraction_failures(self) -> dict[ModuleKind, int]:
        return dict(self._data.extraction_failures)

    def get_module(self, kind: ModuleKind) -> InterviewModule:
        """Get the live module record for a kind."""
        for module in self._data.modules:
            if module.kind == kind:
                return module
        raise KeyError(kind)

    def completed_module_count(self) -> int:
        return sum(1 for m in self._data.modules if m.is_completed)

    def last_assistant_message(self) -> str | None:
        for message in reversed(self._data.messages):
            if message.role == MessageRole.ASSISTANT:
                return message.content
        return None

    def get_conversation_context(self, max_messages: int | None = None) -> list[dict[str, str]]:
        """
        Get message history in a format suitable for LLM context.

        Args:
            max_messages: Maximum number of trailing messages (None for all).

        Returns:
            List of role/content dicts for LLM consumption.
        """
        messages = self._data.messages[-max_messages:] if max_messages else self._data.messages
        return [{"role": m.role.value, "content": m.content} for m in messages]

    def format_conversation(self, max_messages: int | None = None) -> str:
        """Render recent history as `role: content` lines."""
        context = self.get_conversation_context(max_messages)
        if not context:
            return "(Conversation has not started yet)"
        return "\n".join(f"{m['role']}: {m['content']}" for m in context)

    def get_accumulator(self, kind: ModuleKind) -> Any:
        """Get the accumulated output for a module kind (None until first touched)."""
        return getattr(self._data, _ACCUMULATOR_FIELDS[kind])

    def snapshot(self) -> SessionSnapshot:
        """Deep copy of the session data, safe to persist or hand out."""
        return self._data.model_copy(deep=True)

    # Mutation

    def _ensure_mutable(self) -> None:
        if self.is_complete:
            raise SessionCompletedError(f"Session {self.session_id} is already completed")

    def add_message(self, role: MessageRole, content: str) -> ChatMessage:
        """Append a message to the log."""
        self._ensure_mutable()
        message = ChatMessage(role=role, content=content)
        self._data.messages.append(message)
        return message

    def record_user_message(self, content: str) -> ChatMessage:
        """Append a user message, bump the counter and start the session."""
        message = self.add_message(MessageRole.USER, content)
        self._data.user_message_count += 1
        if self._data.status == SessionStatus.SETUP:
            self._data.status = SessionStatus.IN_PROGRESS
        return message

    def record_assistant_message(self, content: str, turn_kind: TurnKind) -> ChatMessage:
        message = self.add_message(MessageRole.ASSISTANT, content)
        self._data.last_turn_kind = turn_kind
        return message

    def set_phase(self, phase: InterviewPhase) -> InterviewPhase:
        """Move to `phase` unless that would go backward; returns the resulting phase."""
        self._ensure_mutable()
        self._data.current_phase = advance(self._data.current_phase, phase)
        return self._data.current_phase

    def record_question(self, kind: ModuleKind) -> InterviewModule:
        """
        Count a question-bearing turn for a module.

        Updates the module's progress/status and pushes the kind onto the
        bounded focus history.
        """
        self._ensure_mutable()
        module = self.get_module(kind)
        module.record_question()
        history = self._data.question_history
        history.append(kind)
        if len(history) > self._history_size:
            del history[: len(history) - self._history_size]
        return module

    def set_accumulator(self, kind: ModuleKind, value: Any) -> None:
        """Replace the accumulated output for a module kind."""
        self._ensure_mutable()
        setattr(self._data, _ACCUMULATOR_FIELDS[kind], value)

    def record_extraction_failure(self, kind: ModuleKind) -> int:
        """Increment and return the anomaly counter for a module kind."""
        self._ensure_mutable()
        count = self._data.extraction_failures.get(kind, 0) + 1
        self._data.extraction_failures[kind] = count
        return count

    def add_behavior_entry(self, entry: BehaviorLogEntry) -> None:
        self._ensure_mutable()
        self._data.behavior_log.append(entry)

    def add_risk_flags(self, flags: list[str]) -> None:
        """Record risk flags, skipping ones already present."""
        self._ensure_mutable()
        for flag in flags:
            if flag and flag not in self._data.risk_flags:
                self._data.risk_flags.append(flag)

    def complete(self) -> SessionSnapshot:
        """
        Mark the session completed.

        Returns:
            A snapshot of the final state.
        """
        self._ensure_mutable()
        self._data.status = SessionStatus.COMPLETED
        self._data.end_time = datetime.now(timezone.utc)
        self._question_cache.clear()
        return self.snapshot()
