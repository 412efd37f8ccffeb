"""
Orchestrator module for session state and interview flow.

The engine itself lives in `unified_interview.orchestrator.interview_orchestrator`.
"""

from unified_interview.orchestrator.interview_state import InterviewState, SessionCompletedError
from unified_interview.orchestrator.phases import compute_phase
from unified_interview.orchestrator.question_cache import QuestionCache
from unified_interview.orchestrator.scheduler import ModuleScheduler
from unified_interview.orchestrator.schemas import (
    Difficulty,
    InterviewPhase,
    InterviewStyle,
    ModuleKind,
    SessionReport,
    SessionSettings,
    SessionSnapshot,
    SessionStatus,
)

__all__ = [
    "Difficulty",
    "InterviewPhase",
    "InterviewState",
    "InterviewStyle",
    "ModuleKind",
    "ModuleScheduler",
    "QuestionCache",
    "SessionCompletedError",
    "SessionReport",
    "SessionSettings",
    "SessionSnapshot",
    "SessionStatus",
    "compute_phase",
]
