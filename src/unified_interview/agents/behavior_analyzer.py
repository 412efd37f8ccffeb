"""
Behavior analyzer.

Derives sentiment, confidence and motivation signals from every utterance
and rolls them up over a whole conversation. When the LLM is unavailable or
returns unusable output, a local keyword heuristic keeps the session from
going without a signal.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from unified_interview.agents.base import clamp, coerce_str_list, sanitize_for_prompt
from unified_interview.models.llm_client import CollaboratorUnavailableError, LLMClientBase, Message
from unified_interview.models.response_parser import MalformedExtractionError, parse_structured
from unified_interview.orchestrator.schemas import (
    BehaviorAnalysis,
    BehaviorLogEntry,
    ChatMessage,
    ConversationAnalysis,
    MessageRole,
)

logger = logging.getLogger(__name__)

SENTIMENTS = ("positive", "neutral", "negative")
MOTIVATION_LEVELS = ("high", "medium", "low")

HOSTILE_PATTERNS = [
    r"\bstupid\b",
    r"\bidiot",
    r"\bshut up\b",
    r"\bhate (this|you|it)\b",
    r"\bnone of your business\b",
    r"\bwaste of (my )?time\b",
    r"\bf+u+c+k",
    r"\bdamn\b",
]

DISMISSIVE_PATTERNS = [
    r"\bwhatever\b",
    r"\bdon'?t care\b",
    r"\bdoesn'?t matter\b",
    r"\bno idea\b",
    r"\bnext question\b",
    r"\bskip\b",
    r"\bwho cares\b",
]

POSITIVE_PATTERNS = [
    r"\bexcit(ed|ing)\b",
    r"\bgreat\b",
    r"\blove\b",
    r"\benjoy",
    r"\bpassion",
    r"\bproud\b",
    r"\bthrilled\b",
]

SHORT_REPLY_WORDS = 3

HOSTILITY_FLAG = "Hostile or aggressive language"
DISMISSIVE_FLAG = "Dismissive attitude toward questions"
SHORT_REPLY_FLAG = "Very short, disengaged reply"


class _BehaviorPayload(BaseModel):
    """Expected LLM output for a single message."""

    sentiment: str
    confidence: int = 50
    behavioral_markers: list[str] = Field(default_factory=list)
    emotional_state: str = "calm"
    motivation_level: str = "medium"
    communication_style: str = "neutral"
    concerns: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _sentiment(cls, value: Any) -> str:
        text = str(value).strip().lower()
        if text not in SENTIMENTS:
            raise ValueError(f"unknown sentiment {value!r}")
        return text

    @field_validator("motivation_level", mode="before")
    @classmethod
    def _motivation(cls, value: Any) -> str:
        text = str(value).strip().lower()
        return text if text in MOTIVATION_LEVELS else "medium"

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> int:
        try:
            return int(clamp(float(value), 0, 100))
        except (TypeError, ValueError):
            return 50

    @field_validator("emotional_state", "communication_style", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) and value.strip() else "unspecified"

    @field_validator("behavioral_markers", "concerns", "strengths", "recommendations", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


class _ConversationPayload(BaseModel):
    """Expected LLM output for the whole-conversation rollup."""

    overall_sentiment: str
    average_confidence: float = 50.0
    behavioral_patterns: list[str] = Field(default_factory=list)
    emotional_trends: list[str] = Field(default_factory=list)
    motivation_assessment: str = ""
    communication_quality: str = ""
    red_flags: list[str] = Field(default_factory=list)
    positive_indicators: list[str] = Field(default_factory=list)
    development_areas: list[str] = Field(default_factory=list)
    hiring_recommendation: str = ""
    detailed_feedback: str = ""

    @field_validator("overall_sentiment", mode="before")
    @classmethod
    def _sentiment(cls, value: Any) -> str:
        text = str(value).strip().lower()
        if text not in SENTIMENTS:
            raise ValueError(f"unknown sentiment {value!r}")
        return text

    @field_validator("average_confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        try:
            return clamp(float(value), 0.0, 100.0)
        except (TypeError, ValueError):
            return 50.0

    @field_validator(
        "behavioral_patterns",
        "emotional_trends",
        "red_flags",
        "positive_indicators",
        "development_areas",
        mode="before",
    )
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return coerce_str_list(value)


def _matches(patterns: list[str], text: str) -> bool:
    return any(re.search(pattern, text) for pattern in patterns)


def heuristic_analysis(message: str) -> BehaviorAnalysis:
    """
    Keyword screening used when the LLM cannot analyze a message.

    Flags hostility, dismissiveness and very short replies.
    """
    text = message.lower().strip()
    words = text.split()

    analysis = BehaviorAnalysis(source="heuristic")

    if _matches(HOSTILE_PATTERNS, text):
        analysis.sentiment = "negative"
        analysis.confidence = 60
        analysis.emotional_state = "irritated"
        analysis.motivation_level = "low"
        analysis.communication_style = "confrontational"
        analysis.concerns.append(HOSTILITY_FLAG)
        analysis.recommendations.append("De-escalate and check whether the candidate wants to continue")
    elif _matches(DISMISSIVE_PATTERNS, text):
        analysis.sentiment = "negative"
        analysis.confidence = 55
        analysis.emotional_state = "disengaged"
        analysis.motivation_level = "low"
        analysis.communication_style = "dismissive"
        analysis.concerns.append(DISMISSIVE_FLAG)
    elif "!" in text or _matches(POSITIVE_PATTERNS, text):
        analysis.sentiment = "positive"
        analysis.confidence = 70
        analysis.emotional_state = "enthusiastic"
        analysis.motivation_level = "high"
        analysis.behavioral_markers.append("enthusiasm")
        analysis.strengths.append("positive attitude")

    if len(words) < SHORT_REPLY_WORDS:
        if analysis.sentiment == "neutral":
            analysis.sentiment = "negative"
            analysis.confidence = 40
        analysis.concerns.append(SHORT_REPLY_FLAG)
        analysis.recommendations.append("Ask an open follow-up to draw out more detail")
    elif len(words) > 10:
        analysis.behavioral_markers.append("detailed answers")
        analysis.strengths.append("communicative")

    return analysis


def risk_flags_for(analysis: BehaviorAnalysis) -> list[str]:
    """Concerns that should be promoted to session-level risk flags."""
    if analysis.sentiment == "negative" or analysis.source == "heuristic":
        return list(analysis.concerns)
    return [c for c in analysis.concerns if c in (HOSTILITY_FLAG, DISMISSIVE_FLAG, SHORT_REPLY_FLAG)]


class BehaviorAnalyzer:
    """
    Behavior analysis using the LLM, backed by a local heuristic.

    `analyze_message` never raises: any collaborator or parsing failure
    falls back to keyword screening.
    """

    MESSAGE_PROMPT = """Analyse the candidate's behavior based on their message in an interview.

CONTEXT: {context}

CANDIDATE MESSAGE:
"{message}"

Determine:
1. Emotional tone (positive/neutral/negative)
2. Confidence in the answer (0-100)
3. Behavioral markers (professionalism, motivation, communication)
4. Emotional state
5. Motivation level (high/medium/low)
6. Communication style
7. Potential concerns
8. Strengths
9. Recommendations for the interviewer

Return a JSON object:
{{
    "sentiment": "positive|neutral|negative",
    "confidence": <0-100>,
    "behavioral_markers": ["<marker>", ...],
    "emotional_state": "<description>",
    "motivation_level": "high|medium|low",
    "communication_style": "<description>",
    "concerns": ["<concern>", ...],
    "strengths": ["<strength>", ...],
    "recommendations": ["<recommendation>", ...]
}}

Be objective and constructive.
Only return valid JSON, no other text."""

    CONVERSATION_PROMPT = """Analyse the candidate's behavior across the whole interview.

CANDIDATE MESSAGES:
{messages}

STATISTICS:
- Messages: {count}
- Average length: {average_length} characters

Return a JSON object:
{{
    "overall_sentiment": "positive|neutral|negative",
    "average_confidence": <0-100>,
    "behavioral_patterns": ["<pattern>", ...],
    "emotional_trends": ["<trend>", ...],
    "motivation_assessment": "<assessment>",
    "communication_quality": "<assessment>",
    "red_flags": ["<red flag>", ...],
    "positive_indicators": ["<indicator>", ...],
    "development_areas": ["<area>", ...],
    "hiring_recommendation": "<leaning toward hire or no-hire, with reasons>",
    "detailed_feedback": "<constructive feedback>"
}}

Use concrete examples from the conversation.
Only return valid JSON, no other text."""

    def __init__(self, llm_client: LLMClientBase, temperature: float = 0.3) -> None:
        self._llm_client = llm_client
        self._temperature = temperature

    async def analyze_message(self, message: str, context: str = "Unified HR interview") -> BehaviorAnalysis:
        """
        Analyze one candidate message.

        Args:
            message: Candidate utterance.
            context: Short description of the interview setting.

        Returns:
            Behavior analysis from the LLM, or from the heuristic fallback.
        """
        prompt = self.MESSAGE_PROMPT.format(context=context, message=sanitize_for_prompt(message))
        try:
            payload = await self._llm_client.chat_with_json(
                messages=[Message(role="system", content=prompt)],
                temperature=self._temperature,
            )
            parsed = parse_structured(payload, _BehaviorPayload)
        except (CollaboratorUnavailableError, MalformedExtractionError) as e:
            logger.warning(f"Behavior analysis fell back to heuristic: {e}")
            return heuristic_analysis(message)
        except Exception as e:
            logger.error(f"Unexpected {type(e).__name__} in behavior analysis, using heuristic: {e}")
            return heuristic_analysis(message)

        analysis = BehaviorAnalysis(**parsed.model_dump(), source="llm")
        # Local screening still applies; hostility must never go unflagged.
        screened = heuristic_analysis(message)
        for concern in screened.concerns:
            if concern not in analysis.concerns:
                analysis.concerns.append(concern)
        return analysis

    async def analyze_conversation(
        self,
        messages: list[ChatMessage],
        behavior_log: list[BehaviorLogEntry] | None = None,
    ) -> ConversationAnalysis:
        """
        Roll up behavior over a whole conversation.

        Args:
            messages: Session message log.
            behavior_log: Per-message analyses, used by the local fallback.

        Returns:
            Conversation-level analysis.
        """
        user_messages = [m.content for m in messages if m.role == MessageRole.USER]
        if not user_messages:
            return self.summarize_locally(behavior_log or [])

        rendered = "\n".join(
            f'Message {i}: "{sanitize_for_prompt(text, max_length=400)}"'
            for i, text in enumerate(user_messages, start=1)
        )
        prompt = self.CONVERSATION_PROMPT.format(
            messages=rendered,
            count=len(user_messages),
            average_length=round(sum(len(t) for t in user_messages) / len(user_messages)),
        )
        try:
            payload = await self._llm_client.chat_with_json(
                messages=[Message(role="system", content=prompt)],
                temperature=self._temperature,
            )
            parsed = parse_structured(payload, _ConversationPayload)
        except (CollaboratorUnavailableError, MalformedExtractionError) as e:
            logger.warning(f"Conversation analysis fell back to local summary: {e}")
            return self.summarize_locally(behavior_log or [])
        except Exception as e:
            logger.error(f"Unexpected {type(e).__name__} in conversation analysis, using local summary: {e}")
            return self.summarize_locally(behavior_log or [])

        try:
            return ConversationAnalysis(**parsed.model_dump())
        except ValidationError as e:
            logger.warning(f"Conversation analysis rejected: {e}")
            return self.summarize_locally(behavior_log or [])

    @staticmethod
    def summarize_locally(behavior_log: list[BehaviorLogEntry]) -> ConversationAnalysis:
        """Aggregate the per-message log without the LLM."""
        if not behavior_log:
            return ConversationAnalysis(
                behavioral_patterns=["standard behavior"],
                motivation_assessment="Not enough data to assess motivation",
                communication_quality="Not enough data to assess communication",
                hiring_recommendation="Further assessment required",
                detailed_feedback="Not enough data for a full behavior analysis",
            )

        analyses = [entry.analysis for entry in behavior_log]
        sentiments = Counter(a.sentiment for a in analyses)
        overall = sentiments.most_common(1)[0][0]
        average_confidence = round(sum(a.confidence for a in analyses) / len(analyses), 1)
        motivation = Counter(a.motivation_level for a in analyses).most_common(1)[0][0]

        red_flags: list[str] = []
        strengths: list[str] = []
        markers: list[str] = []
        for a in analyses:
            red_flags.extend(c for c in a.concerns if c not in red_flags)
            strengths.extend(s for s in a.strengths if s not in strengths)
            markers.extend(m for m in a.behavioral_markers if m not in markers)

        if overall == "negative" or len(red_flags) >= 3:
            recommendation = "Leaning no-hire: repeated concerns in the candidate's behavior"
        elif overall == "positive" and not red_flags:
            recommendation = "Leaning hire: consistently positive and engaged"
        else:
            recommendation = "Further assessment required"

        return ConversationAnalysis(
            overall_sentiment=overall,
            average_confidence=average_confidence,
            behavioral_patterns=markers,
            emotional_trends=[a.emotional_state for a in analyses[-3:]],
            motivation_assessment=f"Predominant motivation level: {motivation}",
            communication_quality=f"{len(analyses)} messages analysed",
            red_flags=red_flags,
            positive_indicators=strengths,
            development_areas=[],
            hiring_recommendation=recommendation,
            detailed_feedback=(
                f"Sentiment across {len(analyses)} messages: "
                + ", ".join(f"{k} {v}" for k, v in sentiments.most_common())
            ),
        )
