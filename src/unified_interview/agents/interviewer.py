"""
Interviewer agent.

Generates the assistant's side of the conversation: the welcome, the
rapport-building replies, the reaction-plus-question turns and the closing
summary. Every generation has a canned fallback, so the candidate never sees
a collaborator error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from unified_interview.agents.base import sanitize_for_prompt
from unified_interview.models.llm_client import CollaboratorUnavailableError, LLMClientBase, Message
from unified_interview.orchestrator.phases import PHASE_TONE
from unified_interview.orchestrator.schemas import InterviewModule, ModuleKind

if TYPE_CHECKING:
    from unified_interview.orchestrator.interview_state import InterviewState

logger = logging.getLogger(__name__)

FALLBACK_QUESTIONS: dict[ModuleKind, str] = {
    ModuleKind.PROFESSIONAL: "Tell me about the most technically challenging project you've worked on.",
    ModuleKind.PERSONALITY: "When you have an important decision to make, do you prefer to decide alone or talk it through with others?",
    ModuleKind.COMPETENCY: "Can you give me an example of a time you took the lead on something?",
    ModuleKind.PEER_OBSERVATION: "How would your colleagues describe working with you?",
    ModuleKind.PROFILE: "Where would you like your career to be in three to five years?",
}

FALLBACK_WELCOME = (
    "Hello, and welcome! I'm your AI interviewer. This is a relaxed conversation: "
    "we'll talk about your experience, how you like to work and what matters to you. "
    "There are no wrong answers. To start, how has your day been so far?"
)

FALLBACK_RAPPORT = (
    "Thanks for sharing that, it's good to get to know you a little. "
    "What do you enjoy doing outside of work?"
)

FALLBACK_ACKNOWLEDGMENT = "Thank you, that's helpful."

FALLBACK_CLOSING = (
    "Thank you so much for your time and your open answers today. "
    "We've covered your professional background, how you work with others "
    "and what drives you. Your results will be reviewed and you'll hear "
    "about next steps soon."
)


class InterviewerAgent:
    """
    Produces interviewer replies with the LLM.

    Replies are plain text; an empty reply or an unavailable collaborator
    is treated as a failure and replaced with canned text.
    """

    SYSTEM_PROMPT = """You are a friendly, professional HR interviewer running a single
conversational interview that quietly covers several assessments at once:
professional knowledge, personality, competencies, how peers see the candidate
and their career profile. Never mention tests, modules or scores. Keep every
reply short (2-4 sentences), natural and in plain text."""

    WELCOME_PROMPT = """Write the opening message of the interview.
Interview style: {style}. Expected duration: about {duration} minutes.
Greet the candidate warmly, explain that this is a relaxed conversation with no
wrong answers, and end with an easy, friendly opening question."""

    RAPPORT_PROMPT = """We are still building rapport; do NOT ask an assessment question yet.

Tone: {tone}

Recent conversation:
{conversation}

React warmly to the candidate's last message and ask a light, friendly follow-up
about them as a person (hobbies, interests, how their week is going)."""

    QUESTION_PROMPT = """Tone: {tone}

Recent conversation:
{conversation}

Next topic: {module_name} (question {asked} of {target})
Topic guidance: {guidance}

Write a reply that first reacts briefly and genuinely to the candidate's last
message, then asks exactly one new open question for the next topic. Link the
question naturally to what the candidate has already said when possible."""

    CLOSING_PROMPT = """The interview is over.

Recent conversation:
{conversation}

Topics covered: {covered}

Thank the candidate, briefly summarize what you talked about (without any
scores or judgments), and explain that results will be reviewed and next steps
will follow."""

    MODULE_GUIDANCE: dict[ModuleKind, str] = {
        ModuleKind.PROFESSIONAL: "Technical knowledge and hands-on experience in their field.",
        ModuleKind.PERSONALITY: "Preferences: energy from people or solitude, facts or ideas, logic or values, plans or spontaneity.",
        ModuleKind.COMPETENCY: "Concrete past situations showing communication, leadership, initiative, reliability or problem solving.",
        ModuleKind.PEER_OBSERVATION: "How colleagues and managers would describe working with them.",
        ModuleKind.PROFILE: "Career path, achievements, goals and personal qualities.",
    }

    def __init__(
        self,
        llm_client: LLMClientBase,
        temperature: float = 0.7,
        context_window: int = 6,
    ) -> None:
        """
        Initialize the interviewer.

        Args:
            llm_client: Collaborator used for reply generation.
            temperature: Sampling temperature for replies.
            context_window: Number of trailing messages fed into prompts.
        """
        self._llm_client = llm_client
        self._temperature = temperature
        self._context_window = context_window

    async def _generate(self, prompt: str, fallback: str, purpose: str) -> tuple[str, bool]:
        """Run one generation; returns (text, generated_by_llm)."""
        try:
            response = await self._llm_client.chat(
                messages=[
                    Message(role="system", content=self.SYSTEM_PROMPT),
                    Message(role="user", content=prompt),
                ],
                temperature=self._temperature,
            )
        except CollaboratorUnavailableError as e:
            logger.warning(f"{purpose} generation failed, using canned text: {e}")
            return fallback, False
        except Exception as e:
            logger.error(f"Unexpected {type(e).__name__} during {purpose} generation, using canned text: {e}")
            return fallback, False

        text = response.content.strip()
        if not text:
            logger.warning(f"{purpose} generation returned empty text, using canned text")
            return fallback, False
        return text, True

    def _conversation(self, state: InterviewState) -> str:
        return sanitize_for_prompt(state.format_conversation(self._context_window), max_length=4000)

    async def welcome(self, state: InterviewState) -> str:
        """Opening message for a session with no messages yet."""
        prompt = self.WELCOME_PROMPT.format(
            style=state.settings.style.value,
            duration=state.settings.duration,
        )
        text, _ = await self._generate(prompt, FALLBACK_WELCOME, "Welcome")
        return text

    async def rapport(self, state: InterviewState) -> str:
        """Friendly reply for the rapport window; never carries an assessment question."""
        prompt = self.RAPPORT_PROMPT.format(
            tone=PHASE_TONE[state.current_phase],
            conversation=self._conversation(state),
        )
        text, _ = await self._generate(prompt, FALLBACK_RAPPORT, "Rapport")
        return text

    async def reaction_and_question(self, state: InterviewState, module: InterviewModule) -> tuple[str, bool]:
        """
        Short reaction to the last answer plus one question for `module`.

        Returns:
            The reply and whether it came from the LLM (canned replies are
            not worth caching).
        """
        prompt = self.QUESTION_PROMPT.format(
            tone=PHASE_TONE[state.current_phase],
            conversation=self._conversation(state),
            module_name=module.name,
            asked=module.questions_asked,
            target=module.target_questions,
            guidance=self.MODULE_GUIDANCE[module.kind],
        )
        fallback = f"{FALLBACK_ACKNOWLEDGMENT} {FALLBACK_QUESTIONS[module.kind]}"
        return await self._generate(prompt, fallback, f"Question ({module.kind.value})")

    async def closing(self, state: InterviewState) -> str:
        """Closing message summarizing what was covered."""
        covered = ", ".join(m.name for m in state.modules if m.questions_asked > 0) or "a general conversation"
        prompt = self.CLOSING_PROMPT.format(
            conversation=self._conversation(state),
            covered=covered,
        )
        text, _ = await self._generate(prompt, FALLBACK_CLOSING, "Closing")
        return text
