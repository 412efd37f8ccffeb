"""Tests for behavior analysis and its local fallback."""

from typing import Any

import pytest

from unified_interview.agents.behavior_analyzer import (
    DISMISSIVE_FLAG,
    HOSTILITY_FLAG,
    SHORT_REPLY_FLAG,
    BehaviorAnalyzer,
    heuristic_analysis,
    risk_flags_for,
)
from unified_interview.models.llm_client import CollaboratorUnavailableError
from unified_interview.orchestrator.schemas import (
    BehaviorLogEntry,
    ChatMessage,
    MessageRole,
)


class FakeLLM:
    def __init__(self, payload: dict[str, Any]) -> None:
        self.payload = payload

    async def chat_with_json(self, messages, schema=None, temperature=0.2, **kwargs) -> dict[str, Any]:
        return self.payload


class FailingLLM:
    async def chat_with_json(self, messages, schema=None, temperature=0.2, **kwargs) -> dict[str, Any]:
        raise CollaboratorUnavailableError("service down")


class TestHeuristic:
    def test_hostility(self) -> None:
        analysis = heuristic_analysis("This is stupid and a waste of time.")
        assert analysis.sentiment == "negative"
        assert HOSTILITY_FLAG in analysis.concerns
        assert analysis.source == "heuristic"

    def test_dismissive_short_reply(self) -> None:
        analysis = heuristic_analysis("whatever")
        assert analysis.sentiment == "negative"
        assert DISMISSIVE_FLAG in analysis.concerns
        assert SHORT_REPLY_FLAG in analysis.concerns

    def test_short_reply(self) -> None:
        analysis = heuristic_analysis("ok")
        assert analysis.sentiment == "negative"
        assert analysis.concerns == [SHORT_REPLY_FLAG]

    def test_enthusiasm(self) -> None:
        analysis = heuristic_analysis("I love building things!")
        assert analysis.sentiment == "positive"
        assert analysis.confidence == 70
        assert analysis.concerns == []

    def test_detailed_neutral_answer(self) -> None:
        analysis = heuristic_analysis(
            "Last year I migrated our billing service to a new database over three months."
        )
        assert analysis.sentiment == "neutral"
        assert "detailed answers" in analysis.behavioral_markers
        assert risk_flags_for(analysis) == []


class TestBehaviorAnalyzer:
    @pytest.mark.asyncio
    async def test_llm_analysis(self) -> None:
        analyzer = BehaviorAnalyzer(
            FakeLLM(
                {
                    "sentiment": "Positive",
                    "confidence": 140,
                    "motivation_level": "HIGH",
                    "strengths": ["articulate", ""],
                }
            )
        )
        analysis = await analyzer.analyze_message("I led the migration and it went really well.")

        assert analysis.source == "llm"
        assert analysis.sentiment == "positive"
        assert analysis.confidence == 100
        assert analysis.motivation_level == "high"
        assert analysis.strengths == ["articulate"]

    @pytest.mark.asyncio
    async def test_local_screening_still_flags_hostility(self) -> None:
        analyzer = BehaviorAnalyzer(FakeLLM({"sentiment": "neutral"}))
        analysis = await analyzer.analyze_message("Shut up, this interview is stupid.")
        assert HOSTILITY_FLAG in analysis.concerns
        assert HOSTILITY_FLAG in risk_flags_for(analysis)

    @pytest.mark.asyncio
    async def test_collaborator_failure_falls_back(self) -> None:
        analysis = await BehaviorAnalyzer(FailingLLM()).analyze_message("whatever")
        assert analysis.source == "heuristic"
        assert DISMISSIVE_FLAG in analysis.concerns

    @pytest.mark.asyncio
    async def test_malformed_output_falls_back(self) -> None:
        analysis = await BehaviorAnalyzer(FakeLLM({"mood": "great"})).analyze_message("I love it!")
        assert analysis.source == "heuristic"
        assert analysis.sentiment == "positive"

    @pytest.mark.asyncio
    async def test_conversation_fallback_rollup(self) -> None:
        log = [
            BehaviorLogEntry(message="no", analysis=heuristic_analysis("no")),
            BehaviorLogEntry(message="whatever", analysis=heuristic_analysis("whatever")),
            BehaviorLogEntry(message="I love it!", analysis=heuristic_analysis("I love it!")),
        ]
        messages = [ChatMessage(role=MessageRole.USER, content=entry.message) for entry in log]

        rollup = await BehaviorAnalyzer(FailingLLM()).analyze_conversation(messages, log)

        assert rollup.overall_sentiment == "negative"
        assert SHORT_REPLY_FLAG in rollup.red_flags
        assert DISMISSIVE_FLAG in rollup.red_flags
        assert rollup.hiring_recommendation.startswith("Leaning no-hire")

    @pytest.mark.asyncio
    async def test_conversation_llm_rollup(self) -> None:
        analyzer = BehaviorAnalyzer(
            FakeLLM(
                {
                    "overall_sentiment": "positive",
                    "average_confidence": 75,
                    "red_flags": [],
                    "positive_indicators": ["engaged"],
                    "hiring_recommendation": "Leaning hire",
                }
            )
        )
        messages = [ChatMessage(role=MessageRole.USER, content="I enjoy mentoring new colleagues.")]
        rollup = await analyzer.analyze_conversation(messages)

        assert rollup.overall_sentiment == "positive"
        assert rollup.positive_indicators == ["engaged"]

    @pytest.mark.asyncio
    async def test_empty_conversation(self) -> None:
        rollup = await BehaviorAnalyzer(FailingLLM()).analyze_conversation([])
        assert rollup.overall_sentiment == "neutral"
        assert rollup.hiring_recommendation == "Further assessment required"
