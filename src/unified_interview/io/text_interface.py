"""
Text-based interview interface.

Provides a command-line REPL for running a unified interview session.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from unified_interview.orchestrator.schemas import SessionReport, SessionSettings, SessionStatus

if TYPE_CHECKING:
    from unified_interview.orchestrator.interview_orchestrator import InterviewEngine

EXIT_COMMANDS = ("quit", "exit", "end")


class InterviewInterface(ABC):
    """Abstract base class for interview interfaces."""

    @abstractmethod
    async def run(self) -> None:
        """Run the interview interface."""
        ...

    @abstractmethod
    async def send_message(self, message: str) -> None:
        """
        Send a message to the user.

        Args:
            message: Message to display.
        """
        ...

    @abstractmethod
    async def receive_input(self) -> str:
        """
        Receive input from the user.

        Returns:
            User's input string.
        """
        ...


class TextInterface(InterviewInterface):
    """
    Command-line text interface for unified interviews.

    Runs one session until the engine completes it or the candidate types
    an exit command, then prints the report.
    """

    def __init__(
        self,
        engine: InterviewEngine,
        user_id: str = "cli-user",
        settings: SessionSettings | None = None,
    ) -> None:
        """
        Initialize the text interface.

        Args:
            engine: Interview engine to drive.
            user_id: Candidate identifier for the session.
            settings: Session settings (defaults if None).
        """
        self._engine = engine
        self._user_id = user_id
        self._settings = settings or SessionSettings()
        self._session_id: str | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def run(self) -> None:
        """Run the interactive interview session."""
        print("\n" + "=" * 60)
        print("Unified HR Interview")
        print("=" * 60 + "\n")

        snapshot = await self._engine.create_session(self._user_id, self._settings)
        self._session_id = snapshot.id

        welcome = await self._engine.start_session(snapshot.id)
        await self.send_message(f"Interviewer: {welcome}")

        while True:
            candidate_input = await self.receive_input()

            if candidate_input.strip().lower() in EXIT_COMMANDS:
                print("\nEnding interview...")
                await self._engine.complete_session(snapshot.id)
                break

            if not candidate_input.strip():
                continue

            response = await self._engine.submit_utterance(snapshot.id, candidate_input)
            await self.send_message(f"Interviewer: {response}")

            current = await self._engine.get_session(snapshot.id)
            if current is None or current.status == SessionStatus.COMPLETED:
                break

        report = await self._engine.build_report(snapshot.id)
        await self._display_report(report)

    async def send_message(self, message: str) -> None:
        """
        Display a message to the terminal.

        Args:
            message: Message to display.
        """
        print(f"\n{message}\n")

    async def receive_input(self) -> str:
        """
        Get input from the terminal.

        Returns:
            User's input string.
        """
        return await self._get_input("You: ")

    async def _get_input(self, prompt: str) -> str:
        # Using input() for simplicity; in production, could use aioconsole
        try:
            return input(prompt)
        except EOFError:
            return "exit"

    async def _display_report(self, report: SessionReport) -> None:
        """
        Display the session report.

        Args:
            report: Report to display.
        """
        session = report.session
        analysis = report.conversation_analysis

        print("\n" + "=" * 60)
        print("Interview Summary")
        print("=" * 60)
        print(f"\nSession: {session.id}")
        print(f"Duration: {session.start_time} to {session.end_time}")
        print(f"Messages: {len(session.messages)}")

        print("\nModules:")
        for module in session.modules:
            print(f"  - {module.name}: {module.progress:.0f}% ({module.status.value})")

        if session.professional_profile and session.professional_profile.evaluation_count:
            print(f"\nProfessional score: {session.professional_profile.overall_score:.1f}/100")
        if session.personality_profile and session.personality_profile.type_code:
            print(
                f"Personality type: {session.personality_profile.type_code} "
                f"(confidence {session.personality_profile.confidence:.0f}%)"
            )
            if session.personality_profile.team_role:
                print(f"Team role: {session.personality_profile.team_role}")
        if session.competency_scores:
            print("\nCompetencies:")
            for competency, score in sorted(session.competency_scores.items()):
                print(f"  - {competency}: {score}/5")

        if session.risk_flags:
            print("\nRisk flags:")
            for flag in session.risk_flags:
                print(f"  ⚠ {flag}")

        print(f"\nBehavior: {analysis.overall_sentiment}, {analysis.hiring_recommendation}")
        print("\n" + report.summary)
        print("\n" + "=" * 60)
