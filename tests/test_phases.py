"""Tests for the phase state machine."""

from unified_interview.orchestrator.interview_state import InterviewState, build_modules
from unified_interview.orchestrator.phases import advance, compute_phase, phase_from_history
from unified_interview.orchestrator.schemas import (
    InterviewPhase,
    InterviewStyle,
    MessageRole,
    ModuleKind,
    SessionSettings,
)

ORDER = [ModuleKind.PROFESSIONAL, ModuleKind.PERSONALITY, ModuleKind.COMPETENCY, ModuleKind.PEER_OBSERVATION, ModuleKind.PROFILE]


def _modules_with_completed(count: int):
    modules = build_modules(SessionSettings(style=InterviewStyle.QUICK))
    for module in modules[:count]:
        while not module.is_completed:
            module.record_question()
    return modules


class TestComputePhase:
    def test_intro_for_first_two_messages(self) -> None:
        modules = _modules_with_completed(5)
        assert compute_phase(0, modules) == InterviewPhase.INTRO
        assert compute_phase(2, modules) == InterviewPhase.INTRO

    def test_ratio_thresholds(self) -> None:
        assert compute_phase(3, _modules_with_completed(0)) == InterviewPhase.QUESTIONING
        assert compute_phase(3, _modules_with_completed(2)) == InterviewPhase.QUESTIONING
        assert compute_phase(3, _modules_with_completed(3)) == InterviewPhase.DEEP_DIVE
        assert compute_phase(3, _modules_with_completed(4)) == InterviewPhase.DEEP_DIVE
        assert compute_phase(3, _modules_with_completed(5)) == InterviewPhase.COMPLETION


class TestAdvance:
    def test_never_moves_backward(self) -> None:
        assert advance(InterviewPhase.DEEP_DIVE, InterviewPhase.QUESTIONING) == InterviewPhase.DEEP_DIVE
        assert advance(InterviewPhase.INTRO, InterviewPhase.QUESTIONING) == InterviewPhase.QUESTIONING

    def test_state_set_phase_is_forward_only(self) -> None:
        state = InterviewState.create("user-1")
        state.set_phase(InterviewPhase.DEEP_DIVE)
        assert state.set_phase(InterviewPhase.INTRO) == InterviewPhase.DEEP_DIVE


def test_replaying_history_reconstructs_phase() -> None:
    state = InterviewState.create("user-1", SessionSettings(style=InterviewStyle.QUICK))
    for i in range(6):
        state.record_user_message(f"answer {i}")
        if i >= 2:
            state.record_question(ORDER[min(i - 2, 4)])
        state.set_phase(compute_phase(state.user_message_count, state.modules))
        state.add_message(MessageRole.ASSISTANT, f"question {i}")

    assert phase_from_history(state.messages, state.modules) == state.current_phase
