"""
Module scheduler.

Chooses which module owns the next explicit question, by priority and
progress, while keeping any single module from monopolizing the
conversation.
"""

import logging

from unified_interview.orchestrator.interview_state import InterviewState
from unified_interview.orchestrator.schemas import InterviewModule

logger = logging.getLogger(__name__)


class ModuleScheduler:
    """
    Priority scheduler with an anti-repetition guard.

    Candidates are the non-completed modules ordered by (priority, progress).
    If the best candidate owned each of the last `repetition_limit`
    question-bearing turns, the next-best candidate of a different kind is
    used instead when one exists.
    """

    def __init__(self, repetition_limit: int = 3) -> None:
        if repetition_limit < 1:
            raise ValueError("repetition_limit must be at least 1")
        self._repetition_limit = repetition_limit

    @property
    def repetition_limit(self) -> int:
        return self._repetition_limit

    def candidates(self, state: InterviewState) -> list[InterviewModule]:
        """Non-completed modules in scheduling order."""
        available = [m for m in state.modules if not m.is_completed]
        return sorted(available, key=lambda m: (m.priority, m.progress))

    def select(self, state: InterviewState) -> InterviewModule | None:
        """
        Pick the focus module without changing any state.

        Returns:
            The chosen module, or None if every module is completed.
        """
        ranked = self.candidates(state)
        if not ranked:
            return None

        best = ranked[0]
        recent = state.question_history[-self._repetition_limit :]
        if len(recent) == self._repetition_limit and all(kind == best.kind for kind in recent):
            for alternative in ranked[1:]:
                if alternative.kind != best.kind:
                    logger.debug(
                        f"Rotating away from {best.kind.value} after {self._repetition_limit} "
                        f"consecutive questions; choosing {alternative.kind.value}"
                    )
                    return alternative
        return best

    def schedule(self, state: InterviewState) -> InterviewModule | None:
        """
        Pick the focus module and count the question against it.

        Returns:
            The live module record after the update, or None when the
            scheduler is exhausted.
        """
        choice = self.select(state)
        if choice is None:
            logger.info(f"All modules completed for session {state.session_id}")
            return None

        module = state.record_question(choice.kind)
        logger.debug(
            f"Focus module {module.kind.value}: {module.questions_asked}/{module.target_questions} "
            f"({module.status.value})"
        )
        return module
