"""
Session reporting.

Builds the read-only report handed to the presentation layer: the session
snapshot, a natural-language summary and the whole-conversation behavior
rollup.
"""

from __future__ import annotations

import logging

from unified_interview.agents.behavior_analyzer import BehaviorAnalyzer
from unified_interview.models.llm_client import CollaboratorUnavailableError, LLMClientBase, Message
from unified_interview.orchestrator.schemas import SessionReport, SessionSnapshot

logger = logging.getLogger(__name__)


def _duration_minutes(snapshot: SessionSnapshot) -> int:
    if snapshot.end_time is None:
        return 0
    return max(0, round((snapshot.end_time - snapshot.start_time).total_seconds() / 60))


def _availability(snapshot: SessionSnapshot) -> list[str]:
    competencies = (
        f"{len(snapshot.competency_scores)} competencies" if snapshot.competency_scores else "not assessed"
    )
    personality = snapshot.personality_profile
    personality_line = (personality and personality.type_code) or "not determined"
    if personality and personality.team_role:
        personality_line += f" ({personality.team_role})"
    return [
        f"- Professional profile: {'available' if snapshot.professional_profile else 'not completed'}",
        f"- Personality type: {personality_line}",
        f"- Competency scores: {competencies}",
        f"- 360-degree results: {'available' if snapshot.peer_observation_results else 'not completed'}",
        f"- Candidate profile: {'available' if snapshot.candidate_profile else 'not completed'}",
    ]


def render_local_summary(snapshot: SessionSnapshot) -> str:
    """Plain-text summary built without the LLM."""
    lines = [
        f"Interview {snapshot.id} for user {snapshot.user_id}",
        f"Status: {snapshot.status.value}, duration: {_duration_minutes(snapshot)} min, "
        f"messages: {len(snapshot.messages)}, difficulty: {snapshot.settings.difficulty.value}",
        "",
        "Modules:",
    ]
    for module in snapshot.modules:
        lines.append(
            f"- {module.name}: {module.progress:.0f}% ({module.questions_asked}/{module.target_questions} questions)"
        )

    lines.extend(["", "Results:", *_availability(snapshot)])

    professional = snapshot.professional_profile
    if professional and professional.evaluation_count:
        lines.append(f"- Professional score: {professional.overall_score}/100")
    if snapshot.competency_scores:
        rendered = ", ".join(f"{k}: {v}/5" for k, v in sorted(snapshot.competency_scores.items()))
        lines.append(f"- Competencies: {rendered}")
    if snapshot.risk_flags:
        lines.extend(["", "Risk flags:", *(f"- {flag}" for flag in snapshot.risk_flags)])

    return "\n".join(lines)


class ReportBuilder:
    """Assembles session reports, preferring LLM-written summaries."""

    SUMMARY_PROMPT = """Write a detailed summary of a unified HR interview.

Session data:
- ID: {session_id}
- User: {user_id}
- Duration: {duration} minutes
- Total messages: {message_count}
- Difficulty: {difficulty}

Modules and progress:
{modules}

Results:
{results}

Risk flags: {risk_flags}

Write a structured summary with:
1. Overall assessment of the interview
2. Key findings for each module
3. Recommendations for the candidate
4. Suggested next steps

Format: a professional HR specialist's report in plain text."""

    def __init__(
        self,
        llm_client: LLMClientBase,
        behavior_analyzer: BehaviorAnalyzer,
        temperature: float = 0.3,
    ) -> None:
        self._llm_client = llm_client
        self._behavior_analyzer = behavior_analyzer
        self._temperature = temperature

    async def generate_summary(self, snapshot: SessionSnapshot) -> str:
        """
        Generate a natural-language summary of a session.

        Args:
            snapshot: Session to summarize.

        Returns:
            LLM-written summary, or a locally rendered one on failure.
        """
        prompt = self.SUMMARY_PROMPT.format(
            session_id=snapshot.id,
            user_id=snapshot.user_id,
            duration=_duration_minutes(snapshot),
            message_count=len(snapshot.messages),
            difficulty=snapshot.settings.difficulty.value,
            modules="\n".join(
                f"- {m.name}: {m.progress:.0f}% ({m.questions_asked}/{m.target_questions} questions)"
                for m in snapshot.modules
            ),
            results="\n".join(_availability(snapshot)),
            risk_flags=", ".join(snapshot.risk_flags) or "none",
        )
        try:
            response = await self._llm_client.chat(
                messages=[Message(role="system", content=prompt)],
                temperature=self._temperature,
            )
        except CollaboratorUnavailableError as e:
            logger.warning(f"Summary generation failed for session {snapshot.id}: {e}")
            return render_local_summary(snapshot)
        except Exception as e:
            logger.error(f"Unexpected {type(e).__name__} generating summary for session {snapshot.id}: {e}")
            return render_local_summary(snapshot)

        summary = response.content.strip()
        return summary or render_local_summary(snapshot)

    async def build_report(self, snapshot: SessionSnapshot) -> SessionReport:
        """Build the full report for a session snapshot."""
        summary = await self.generate_summary(snapshot)
        analysis = await self._behavior_analyzer.analyze_conversation(snapshot.messages, snapshot.behavior_log)
        return SessionReport(
            session=snapshot,
            summary=summary,
            conversation_analysis=analysis,
            metadata={
                "extraction_failures": {k.value: v for k, v in snapshot.extraction_failures.items()},
                "completed_modules": sum(1 for m in snapshot.modules if m.is_completed),
            },
        )
