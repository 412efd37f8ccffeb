"""Tests for the session aggregate."""

import pytest

from unified_interview.orchestrator.interview_state import InterviewState, SessionCompletedError
from unified_interview.orchestrator.schemas import (
    InterviewModule,
    MessageRole,
    ModuleKind,
    ModuleStatus,
    SessionSnapshot,
    SessionStatus,
    TurnKind,
)


class TestInterviewState:
    @pytest.fixture
    def state(self) -> InterviewState:
        return InterviewState.create("user-1")

    def test_initialization(self, state: InterviewState) -> None:
        assert state.session_id.startswith("unified-")
        assert state.status == SessionStatus.SETUP
        assert state.messages == []
        assert state.competency_scores is None
        assert not state.is_complete

    def test_first_user_message_starts_session(self, state: InterviewState) -> None:
        state.record_assistant_message("Welcome!", TurnKind.WELCOME)
        assert state.status == SessionStatus.SETUP

        state.record_user_message("Hi")
        assert state.status == SessionStatus.IN_PROGRESS
        assert state.user_message_count == 1

    def test_module_status_moves_forward(self, state: InterviewState) -> None:
        module = state.get_module(ModuleKind.PROFILE)
        assert module.status == ModuleStatus.PENDING

        state.record_question(ModuleKind.PROFILE)
        assert module.status == ModuleStatus.IN_PROGRESS
        assert module.progress == 50.0

        state.record_question(ModuleKind.PROFILE)
        assert module.status == ModuleStatus.COMPLETED
        with pytest.raises(ValueError):
            state.record_question(ModuleKind.PROFILE)

    def test_modules_property_returns_copies(self, state: InterviewState) -> None:
        state.modules[0].questions_asked = 99
        assert state.get_module(ModuleKind.PROFESSIONAL).questions_asked == 0

    def test_conversation_context(self, state: InterviewState) -> None:
        state.add_message(MessageRole.ASSISTANT, "Question 1")
        state.record_user_message("Answer 1")
        state.add_message(MessageRole.ASSISTANT, "Question 2")

        context = state.get_conversation_context(max_messages=2)

        assert context == [
            {"role": "user", "content": "Answer 1"},
            {"role": "assistant", "content": "Question 2"},
        ]
        assert state.last_assistant_message() == "Question 2"

    def test_risk_flags_are_deduplicated(self, state: InterviewState) -> None:
        state.add_risk_flags(["a", "b"])
        state.add_risk_flags(["b", "c", ""])
        assert state.risk_flags == ["a", "b", "c"]

    def test_completed_session_is_read_only(self, state: InterviewState) -> None:
        state.record_user_message("Hi")
        state.question_cache.set("k", "v")

        snapshot = state.complete()

        assert snapshot.status == SessionStatus.COMPLETED
        assert snapshot.end_time is not None
        assert len(state.question_cache) == 0
        with pytest.raises(SessionCompletedError):
            state.record_user_message("Still there?")
        with pytest.raises(SessionCompletedError):
            state.set_accumulator(ModuleKind.COMPETENCY, {"teamwork": 5})
        with pytest.raises(SessionCompletedError):
            state.complete()
        assert len(state.messages) == 1

    def test_duplicate_module_kinds_rejected(self) -> None:
        modules = [
            InterviewModule(name="A", kind=ModuleKind.PROFILE, target_questions=1, priority=1),
            InterviewModule(name="B", kind=ModuleKind.PROFILE, target_questions=1, priority=2),
        ]
        with pytest.raises(ValueError):
            InterviewState(SessionSnapshot(user_id="user-1", modules=modules))

    def test_snapshot_is_a_deep_copy(self, state: InterviewState) -> None:
        snapshot = state.snapshot()
        snapshot.modules[0].questions_asked = 5
        assert state.get_module(ModuleKind.PROFESSIONAL).questions_asked == 0
