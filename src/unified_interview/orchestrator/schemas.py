"""
Pydantic schemas for the orchestrator module.

Defines the session aggregate, its modules, the accumulated assessment
profiles and the behavior-analysis records.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


def _now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    """Lifecycle of an interview session."""

    SETUP = "setup"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class InterviewPhase(str, Enum):
    """Coarse conversational stage, used to flavor generated prompts."""

    INTRO = "intro"
    QUESTIONING = "questioning"
    DEEP_DIVE = "deep-dive"
    COMPLETION = "completion"


class Difficulty(str, Enum):
    """Seniority level the interview is calibrated for."""

    JUNIOR = "junior"
    MIDDLE = "middle"
    SENIOR = "senior"


class InterviewStyle(str, Enum):
    """Controls how many questions each module aims for."""

    COMPREHENSIVE = "comprehensive"
    FOCUSED = "focused"
    QUICK = "quick"


class ModuleKind(str, Enum):
    """The five assessment tracks run inside one session."""

    PROFESSIONAL = "professional"
    PERSONALITY = "personality"
    COMPETENCY = "competency"
    PEER_OBSERVATION = "peer_observation"
    PROFILE = "profile"


class ModuleStatus(str, Enum):
    """Progress state of a module; only moves forward."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class MessageRole(str, Enum):
    """Role of the speaker in the message log."""

    USER = "user"
    ASSISTANT = "assistant"


class TurnKind(str, Enum):
    """What kind of reply the engine produced for a turn."""

    WELCOME = "welcome"
    RAPPORT = "rapport"
    REACTION_PLUS_QUESTION = "reaction_plus_question"
    CLOSING = "closing"


COMPETENCY_TAXONOMY: tuple[str, ...] = (
    "communication",
    "leadership",
    "productivity",
    "reliability",
    "initiative",
    "problem_solving",
    "teamwork",
    "adaptability",
    "innovation",
    "customer_focus",
)

PEER_OBSERVATION_DIMENSIONS: tuple[str, ...] = (
    "teamwork",
    "communication",
    "leadership",
    "adaptability",
    "collaboration",
)

PERSONALITY_AXES: tuple[tuple[str, str], ...] = (
    ("E", "I"),
    ("S", "N"),
    ("T", "F"),
    ("J", "P"),
)


class SessionSettings(BaseModel):
    """Settings chosen when a session is created."""

    difficulty: Difficulty = Field(default=Difficulty.MIDDLE, description="Interview difficulty")
    duration: int = Field(default=20, ge=1, description="Advisory duration in minutes")
    style: InterviewStyle = Field(default=InterviewStyle.FOCUSED, description="Question volume per module")
    focus_areas: list[str] = Field(default_factory=list, description="Topic hints for question generation")


class InterviewModule(BaseModel):
    """One assessment track inside a session."""

    name: str = Field(..., description="Human-readable module name")
    kind: ModuleKind = Field(..., description="Module type")
    status: ModuleStatus = Field(default=ModuleStatus.PENDING, description="Module status")
    progress: float = Field(default=0.0, ge=0.0, le=100.0, description="Completion percentage")
    questions_asked: int = Field(default=0, ge=0, description="Questions asked so far")
    target_questions: int = Field(..., ge=1, description="Questions needed to complete the module")
    priority: int = Field(..., ge=1, description="Scheduling priority (1 = highest)")

    @property
    def is_completed(self) -> bool:
        """Check if the module has reached its target."""
        return self.status == ModuleStatus.COMPLETED

    def record_question(self) -> None:
        """
        Count one more question owned by this module.

        Recomputes progress and moves status forward. A completed module
        never accepts further questions.

        Raises:
            ValueError: If the module is already completed.
        """
        if self.is_completed:
            raise ValueError(f"Module {self.kind.value} is already completed")

        self.questions_asked += 1
        self.progress = min(100.0, self.questions_asked / self.target_questions * 100)
        if self.questions_asked >= self.target_questions:
            self.status = ModuleStatus.COMPLETED
        elif self.status == ModuleStatus.PENDING:
            self.status = ModuleStatus.IN_PROGRESS


class ChatMessage(BaseModel):
    """An entry in the append-only message log."""

    role: MessageRole = Field(..., description="Speaker")
    content: str = Field(..., description="Message text")
    timestamp: datetime = Field(default_factory=_now_utc, description="When the message was appended")


class ProfessionalProfile(BaseModel):
    """Accumulated technical Q&A evaluation."""

    overall_score: float = Field(default=0.0, ge=0.0, le=100.0, description="Running average of answer scores")
    evaluation_count: int = Field(default=0, ge=0, description="Answers scored so far")
    skill_scores: dict[str, float] = Field(default_factory=dict, description="Running average per skill tag")
    skill_samples: dict[str, int] = Field(default_factory=dict, description="Samples behind each skill average")
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class PersonalityProfile(BaseModel):
    """Accumulated trait-axis pressure and the best-fit four-letter type."""

    scores: dict[str, float] = Field(
        default_factory=lambda: {pole: 0.0 for axis in PERSONALITY_AXES for pole in axis},
        description="Accumulated pressure per pole",
    )
    type_code: str | None = Field(default=None, description="Best-fit type, set by the final pass")
    confidence: float = Field(default=0.0, ge=0.0, le=100.0, description="Confidence in the type (0-100)")
    evidence: list[str] = Field(default_factory=list, description="Language cues that moved the scores")
    description: str | None = Field(default=None, description="Short portrait of the resolved type")
    work_preferences: list[str] = Field(default_factory=list)
    team_role: str | None = None
    stress_factors: list[str] = Field(default_factory=list)
    motivators: list[str] = Field(default_factory=list)


class PeerObservationResults(BaseModel):
    """360-style behavioral scores plus free-text observations."""

    scores: dict[str, int] = Field(default_factory=dict, description="Dimension -> 1-5 score")
    observations: list[str] = Field(default_factory=list, description="Observations in arrival order")


class CandidateProfile(BaseModel):
    """Biographical and skill facts extracted from the conversation."""

    name: str | None = None
    position: str | None = None
    years_of_experience: float | None = None
    skills: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    personal_qualities: list[str] = Field(default_factory=list)


class BehaviorAnalysis(BaseModel):
    """Per-utterance behavior signals."""

    sentiment: str = Field(default="neutral", description="positive, neutral or negative")
    confidence: int = Field(default=50, ge=0, le=100, description="Confidence in the answer (0-100)")
    behavioral_markers: list[str] = Field(default_factory=list)
    emotional_state: str = Field(default="calm")
    motivation_level: str = Field(default="medium", description="high, medium or low")
    communication_style: str = Field(default="neutral")
    concerns: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    source: str = Field(default="llm", description="llm or heuristic")


class BehaviorLogEntry(BaseModel):
    """A behavior analysis tied to the message it describes."""

    message: str
    analysis: BehaviorAnalysis
    timestamp: datetime = Field(default_factory=_now_utc)


class ConversationAnalysis(BaseModel):
    """Whole-conversation behavior rollup."""

    overall_sentiment: str = "neutral"
    average_confidence: float = Field(default=50.0, ge=0.0, le=100.0)
    behavioral_patterns: list[str] = Field(default_factory=list)
    emotional_trends: list[str] = Field(default_factory=list)
    motivation_assessment: str = ""
    communication_quality: str = ""
    red_flags: list[str] = Field(default_factory=list)
    positive_indicators: list[str] = Field(default_factory=list)
    development_areas: list[str] = Field(default_factory=list)
    hiring_recommendation: str = ""
    detailed_feedback: str = ""


class SessionSnapshot(BaseModel):
    """
    Serializable form of the session aggregate.

    This is the only thing persisted and restored; everything else is
    derived from it.
    """

    id: str = Field(default_factory=lambda: f"unified-{uuid4().hex}")
    user_id: str
    start_time: datetime = Field(default_factory=_now_utc)
    end_time: datetime | None = None
    status: SessionStatus = SessionStatus.SETUP
    current_phase: InterviewPhase = InterviewPhase.INTRO
    settings: SessionSettings = Field(default_factory=SessionSettings)
    modules: list[InterviewModule] = Field(default_factory=list)
    messages: list[ChatMessage] = Field(default_factory=list)
    user_message_count: int = 0
    last_turn_kind: TurnKind | None = None
    question_history: list[ModuleKind] = Field(default_factory=list)

    professional_profile: ProfessionalProfile | None = None
    personality_profile: PersonalityProfile | None = None
    competency_scores: dict[str, int] | None = None
    peer_observation_results: PeerObservationResults | None = None
    candidate_profile: CandidateProfile | None = None

    behavior_log: list[BehaviorLogEntry] = Field(default_factory=list)
    risk_flags: list[str] = Field(default_factory=list)
    extraction_failures: dict[ModuleKind, int] = Field(default_factory=dict)


class SessionReport(BaseModel):
    """Read-only export consumed by the presentation layer."""

    session: SessionSnapshot
    summary: str
    conversation_analysis: ConversationAnalysis
    generated_at: datetime = Field(default_factory=_now_utc)
    metadata: dict[str, Any] = Field(default_factory=dict)
