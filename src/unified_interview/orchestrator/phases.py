"""
Phase state machine.

The phase is advisory: it changes the tone of generated prompts but never
drives control flow. Phases only move forward.
"""

from collections.abc import Iterable

from unified_interview.orchestrator.schemas import (
    ChatMessage,
    InterviewModule,
    InterviewPhase,
    MessageRole,
)

PHASE_ORDER: tuple[InterviewPhase, ...] = (
    InterviewPhase.INTRO,
    InterviewPhase.QUESTIONING,
    InterviewPhase.DEEP_DIVE,
    InterviewPhase.COMPLETION,
)

# Phase-specific guidance fed into reply prompts.
PHASE_TONE: dict[InterviewPhase, str] = {
    InterviewPhase.INTRO: "Warm and informal. Help the candidate settle in.",
    InterviewPhase.QUESTIONING: "Curious and structured. Cover new ground with open questions.",
    InterviewPhase.DEEP_DIVE: "Probing. Ask for concrete examples and specifics behind earlier claims.",
    InterviewPhase.COMPLETION: "Appreciative and concise. Fill the remaining gaps and start wrapping up.",
}


def compute_phase(message_count: int, modules: Iterable[InterviewModule]) -> InterviewPhase:
    """
    Derive the phase from the user message count and module completion.

    Args:
        message_count: Number of user messages so far.
        modules: The session's modules.

    Returns:
        The phase dictated by the transition rule.
    """
    module_list = list(modules)
    if message_count <= 2:
        return InterviewPhase.INTRO

    total = len(module_list)
    completed = sum(1 for m in module_list if m.is_completed)
    completed_ratio = completed / total if total else 1.0

    if completed_ratio < 0.5:
        return InterviewPhase.QUESTIONING
    if completed_ratio < 0.9:
        return InterviewPhase.DEEP_DIVE
    return InterviewPhase.COMPLETION


def advance(current: InterviewPhase, computed: InterviewPhase) -> InterviewPhase:
    """Return the later of two phases so the machine never moves backward."""
    return max(current, computed, key=PHASE_ORDER.index)


def phase_from_history(messages: Iterable[ChatMessage], modules: Iterable[InterviewModule]) -> InterviewPhase:
    """Recompute the phase by replaying a message log."""
    user_messages = sum(1 for m in messages if m.role == MessageRole.USER)
    return compute_phase(user_messages, modules)
