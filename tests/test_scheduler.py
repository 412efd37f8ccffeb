"""Tests for module targets, the scheduler and the anti-repetition guard."""

import pytest

from unified_interview.orchestrator.interview_state import InterviewState, target_questions
from unified_interview.orchestrator.scheduler import ModuleScheduler
from unified_interview.orchestrator.schemas import (
    Difficulty,
    InterviewStyle,
    ModuleKind,
    ModuleStatus,
    SessionSettings,
)


def _state(style: InterviewStyle = InterviewStyle.QUICK, difficulty: Difficulty = Difficulty.MIDDLE) -> InterviewState:
    return InterviewState.create("user-1", SessionSettings(style=style, difficulty=difficulty))


class TestTargets:
    def test_quick_middle_targets(self) -> None:
        state = _state()
        targets = {m.kind: m.target_questions for m in state.modules}
        assert targets == {
            ModuleKind.PROFESSIONAL: 3,
            ModuleKind.PERSONALITY: 2,
            ModuleKind.COMPETENCY: 2,
            ModuleKind.PEER_OBSERVATION: 2,
            ModuleKind.PROFILE: 1,
        }

    def test_difficulty_shifts_only_professional(self) -> None:
        junior = SessionSettings(style=InterviewStyle.QUICK, difficulty=Difficulty.JUNIOR)
        senior = SessionSettings(style=InterviewStyle.QUICK, difficulty=Difficulty.SENIOR)
        assert target_questions(ModuleKind.PROFESSIONAL, junior) == 2
        assert target_questions(ModuleKind.PROFESSIONAL, senior) == 4
        assert target_questions(ModuleKind.PERSONALITY, junior) == 2
        assert target_questions(ModuleKind.PERSONALITY, senior) == 2

    def test_modules_are_priority_ordered_and_unique(self) -> None:
        state = _state(InterviewStyle.COMPREHENSIVE)
        assert [m.priority for m in state.modules] == [1, 2, 3, 4, 5]
        assert len({m.kind for m in state.modules}) == 5


class TestModuleScheduler:
    @pytest.fixture
    def scheduler(self) -> ModuleScheduler:
        return ModuleScheduler(repetition_limit=3)

    def test_quick_session_exhausts_after_ten_questions(self, scheduler: ModuleScheduler) -> None:
        state = _state()
        picks = []
        for _ in range(10):
            module = scheduler.schedule(state)
            assert module is not None
            picks.append(module.kind)

        assert all(m.status == ModuleStatus.COMPLETED for m in state.modules)
        assert scheduler.schedule(state) is None
        assert picks[:3] == [ModuleKind.PROFESSIONAL] * 3
        assert picks[-1] == ModuleKind.PROFILE

    def test_priority_wins_over_progress(self, scheduler: ModuleScheduler) -> None:
        state = _state(InterviewStyle.COMPREHENSIVE)
        state.record_question(ModuleKind.PROFESSIONAL)
        assert scheduler.select(state).kind == ModuleKind.PROFESSIONAL

    def test_anti_repetition_rotates_after_three_in_a_row(self, scheduler: ModuleScheduler) -> None:
        state = _state(InterviewStyle.FOCUSED)
        kinds = [scheduler.schedule(state).kind for _ in range(5)]

        assert kinds[:3] == [ModuleKind.PROFESSIONAL] * 3
        assert kinds[3] == ModuleKind.PERSONALITY
        assert kinds[4] == ModuleKind.PROFESSIONAL

    def test_anti_repetition_falls_back_without_alternative(self, scheduler: ModuleScheduler) -> None:
        state = _state(InterviewStyle.COMPREHENSIVE)
        for kind in (ModuleKind.PERSONALITY, ModuleKind.COMPETENCY, ModuleKind.PEER_OBSERVATION, ModuleKind.PROFILE):
            module = state.get_module(kind)
            while not module.is_completed:
                state.record_question(kind)
        for _ in range(3):
            state.record_question(ModuleKind.PROFESSIONAL)

        assert scheduler.select(state).kind == ModuleKind.PROFESSIONAL

    def test_select_does_not_mutate(self, scheduler: ModuleScheduler) -> None:
        state = _state()
        before = state.snapshot()
        scheduler.select(state)
        assert state.snapshot() == before

    def test_question_totals_never_exceed_targets(self, scheduler: ModuleScheduler) -> None:
        state = _state(InterviewStyle.FOCUSED, Difficulty.SENIOR)
        total_target = sum(m.target_questions for m in state.modules)
        while scheduler.schedule(state) is not None:
            pass
        assert sum(m.questions_asked for m in state.modules) == total_target
        assert all(m.progress == 100.0 for m in state.modules)

    def test_history_is_bounded(self) -> None:
        state = InterviewState.create(
            "user-1",
            SessionSettings(style=InterviewStyle.COMPREHENSIVE),
            history_size=4,
        )
        scheduler = ModuleScheduler()
        for _ in range(10):
            scheduler.schedule(state)
        assert len(state.question_history) == 4

    def test_invalid_repetition_limit(self) -> None:
        with pytest.raises(ValueError):
            ModuleScheduler(repetition_limit=0)
