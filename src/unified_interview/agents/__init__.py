"""Evaluators and conversational agents for the unified interview."""

from unified_interview.agents.base import EvaluationContext, ModuleEvaluator
from unified_interview.agents.behavior_analyzer import BehaviorAnalyzer, heuristic_analysis
from unified_interview.agents.competency import CompetencyEvaluator
from unified_interview.agents.interviewer import FALLBACK_QUESTIONS, InterviewerAgent
from unified_interview.agents.peer_observation import PeerObservationEvaluator
from unified_interview.agents.personality import PersonalityEvaluator
from unified_interview.agents.professional import ProfessionalEvaluator
from unified_interview.agents.profile_builder import ProfileBuilderEvaluator

__all__ = [
    "BehaviorAnalyzer",
    "CompetencyEvaluator",
    "EvaluationContext",
    "FALLBACK_QUESTIONS",
    "InterviewerAgent",
    "ModuleEvaluator",
    "PeerObservationEvaluator",
    "PersonalityEvaluator",
    "ProfessionalEvaluator",
    "ProfileBuilderEvaluator",
    "heuristic_analysis",
]
