"""
Interview orchestrator.

Runs the unified interview turn loop: every candidate utterance is mined by
all five module evaluators and the behavior analyzer at once, then a single
reply is produced for the module the scheduler puts in focus.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from unified_interview.agents import (
    BehaviorAnalyzer,
    CompetencyEvaluator,
    EvaluationContext,
    InterviewerAgent,
    ModuleEvaluator,
    PeerObservationEvaluator,
    PersonalityEvaluator,
    ProfessionalEvaluator,
    ProfileBuilderEvaluator,
)
from unified_interview.agents.behavior_analyzer import heuristic_analysis, risk_flags_for
from unified_interview.config import Settings, get_settings
from unified_interview.db.store import InMemorySessionStore, SessionStore
from unified_interview.io.competency_store import CompetencyStoreClient
from unified_interview.models.llm_client import LLMClient, LLMClientBase
from unified_interview.orchestrator.interview_state import InterviewState, SessionCompletedError
from unified_interview.orchestrator.phases import compute_phase
from unified_interview.orchestrator.reporting import ReportBuilder
from unified_interview.orchestrator.scheduler import ModuleScheduler
from unified_interview.orchestrator.schemas import (
    BehaviorAnalysis,
    BehaviorLogEntry,
    InterviewModule,
    ModuleKind,
    SessionReport,
    SessionSettings,
    SessionSnapshot,
    TurnKind,
)

logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    """Raised when a session id is neither registered nor stored."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InterviewEngine:
    """
    Caller-facing API for unified interview sessions.

    Sessions are addressed by id. Live sessions are kept in a registry and
    saved to the store after every change; a session missing from the
    registry is loaded from the store on first access. Completed sessions
    are dropped from the registry and always read back from the store.
    Turns for the same session are serialized with a per-session lock, while
    different sessions proceed independently.
    """

    def __init__(
        self,
        llm_client: LLMClientBase | None = None,
        store: SessionStore | None = None,
        settings: Settings | None = None,
        competency_client: CompetencyStoreClient | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            llm_client: Text-generation collaborator. Creates default if None.
            store: Session store. In-memory if None.
            settings: Application settings (uses config if not provided).
            competency_client: Competency tracker client. Created from
                settings if None.
        """
        self._settings = settings or get_settings()
        self._llm_client = llm_client if llm_client is not None else LLMClient()
        self._store = store if store is not None else InMemorySessionStore()
        self._competency_client = competency_client or CompetencyStoreClient(
            base_url=self._settings.competency_store_url,
        )

        extraction_temperature = self._settings.extraction_temperature
        self._personality = PersonalityEvaluator(self._llm_client, temperature=extraction_temperature)
        self._evaluators: list[ModuleEvaluator[Any]] = [
            ProfessionalEvaluator(self._llm_client, temperature=extraction_temperature),
            self._personality,
            CompetencyEvaluator(self._llm_client, temperature=extraction_temperature),
            PeerObservationEvaluator(self._llm_client, temperature=extraction_temperature),
            ProfileBuilderEvaluator(self._llm_client, temperature=extraction_temperature),
        ]
        self._behavior_analyzer = BehaviorAnalyzer(self._llm_client, temperature=extraction_temperature)
        self._interviewer = InterviewerAgent(
            self._llm_client,
            temperature=self._settings.llm_temperature,
            context_window=self._settings.context_window_messages,
        )
        self._scheduler = ModuleScheduler(repetition_limit=self._settings.repetition_limit)
        self._reports = ReportBuilder(self._llm_client, self._behavior_analyzer)

        self._sessions: dict[str, InterviewState] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._background_tasks: set[asyncio.Task[Any]] = set()

    # Registry

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        return self._locks.setdefault(session_id, asyncio.Lock())

    def _wrap(self, snapshot: SessionSnapshot) -> InterviewState:
        return InterviewState(
            snapshot,
            history_size=max(self._settings.question_history_size, self._settings.repetition_limit),
            cache_ttl_seconds=self._settings.question_cache_ttl_seconds,
        )

    async def _get_state(self, session_id: str) -> InterviewState:
        state = self._sessions.get(session_id)
        if state is not None:
            return state

        snapshot = await self._store.load(session_id)
        if snapshot is None:
            self._locks.pop(session_id, None)
            raise SessionNotFoundError(session_id)

        state = self._wrap(snapshot)
        if state.is_complete:
            # Read-only from here on; always served from the store.
            self._locks.pop(session_id, None)
        else:
            self._sessions[session_id] = state
        logger.debug(f"Loaded session {session_id} from store")
        return state

    def _evict(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)

    async def _save(self, state: InterviewState) -> None:
        await self._store.save(state.session_id, state.snapshot())

    # Caller API

    async def create_session(self, user_id: str, settings: SessionSettings | None = None) -> SessionSnapshot:
        """
        Create a new session in the `setup` status.

        Args:
            user_id: Candidate the session belongs to.
            settings: Difficulty, style and focus areas.

        Returns:
            Snapshot of the new session.
        """
        state = InterviewState.create(
            user_id,
            settings,
            history_size=max(self._settings.question_history_size, self._settings.repetition_limit),
            cache_ttl_seconds=self._settings.question_cache_ttl_seconds,
        )
        self._sessions[state.session_id] = state
        await self._save(state)
        logger.info(
            f"Created session {state.session_id} for user {user_id} "
            f"(style={state.settings.style.value}, difficulty={state.settings.difficulty.value})"
        )
        return state.snapshot()

    async def start_session(self, session_id: str) -> str:
        """Produce the welcome message for a session with no messages yet."""
        return await self.submit_utterance(session_id, None)

    async def submit_utterance(self, session_id: str, text: str | None) -> str:
        """
        Process one candidate utterance and return the interviewer's reply.

        Args:
            session_id: Target session.
            text: Candidate utterance; None only for the opening turn.

        Returns:
            Reply text, never empty.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionCompletedError: If the session is already completed.
            ValueError: If no utterance is given after the opening turn.
        """
        async with self._lock_for(session_id):
            state = await self._get_state(session_id)
            if state.is_complete:
                raise SessionCompletedError(f"Session {session_id} is already completed")

            utterance = (text or "").strip()
            if not utterance:
                if state.messages:
                    raise ValueError("An utterance is required after the opening turn")
                reply = await self._interviewer.welcome(state)
                state.record_assistant_message(reply, TurnKind.WELCOME)
                await self._save(state)
                return reply

            reply = await self._process_turn(state, utterance)
            if not state.is_complete:
                await self._save(state)
            return reply

    async def complete_session(self, session_id: str) -> SessionSnapshot:
        """
        End a session explicitly.

        Completing an already-completed session returns its snapshot.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        async with self._lock_for(session_id):
            state = await self._get_state(session_id)
            if state.is_complete:
                return state.snapshot()
            return await self._finish(state)

    async def get_session(self, session_id: str) -> SessionSnapshot | None:
        """Read-only snapshot of a session, or None if unknown."""
        try:
            state = await self._get_state(session_id)
        except SessionNotFoundError:
            return None
        return state.snapshot()

    async def build_report(self, session_id: str) -> SessionReport:
        """
        Build the summary report for a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        state = await self._get_state(session_id)
        return await self._reports.build_report(state.snapshot())

    async def aclose(self) -> None:
        """Wait for pending background submissions and release clients."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        await self._competency_client.close()
        await self._store.close()
        close = getattr(self._llm_client, "close", None)
        if close is not None:
            await close()

    # Turn loop

    async def _process_turn(self, state: InterviewState, utterance: str) -> str:
        state.record_user_message(utterance)
        logger.debug(f"Session {state.session_id}: user message {state.user_message_count}")

        await self._evaluate(state, utterance)

        state.set_phase(compute_phase(state.user_message_count, state.modules))

        if state.user_message_count <= self._settings.rapport_turns:
            reply = await self._interviewer.rapport(state)
            state.record_assistant_message(reply, TurnKind.RAPPORT)
            return reply

        module = self._scheduler.schedule(state)
        if module is None:
            reply = await self._interviewer.closing(state)
            state.record_assistant_message(reply, TurnKind.CLOSING)
            await self._finish(state)
            return reply

        reply = await self._question_for(state, module)
        state.record_assistant_message(reply, TurnKind.REACTION_PLUS_QUESTION)
        return reply

    async def _run_extraction(
        self,
        evaluator: ModuleEvaluator[Any],
        utterance: str,
        context: EvaluationContext,
    ) -> Any:
        return await asyncio.wait_for(
            evaluator.extract(utterance, context),
            timeout=self._settings.extraction_timeout,
        )

    async def _evaluate(self, state: InterviewState, utterance: str) -> None:
        """
        Fan the utterance out to the behavior analyzer and every evaluator.

        All tasks settle before anything is applied; one failure never
        blocks the others.
        """
        context = EvaluationContext.from_state(state, self._settings.context_window_messages)
        behavior, *results = await asyncio.gather(
            self._behavior_analyzer.analyze_message(utterance),
            *(self._run_extraction(evaluator, utterance, context) for evaluator in self._evaluators),
            return_exceptions=True,
        )

        if isinstance(behavior, BaseException):
            logger.warning(f"Behavior analysis raised {type(behavior).__name__}: {behavior}")
            behavior = heuristic_analysis(utterance)
        self._record_behavior(state, utterance, behavior)

        for evaluator, result in zip(self._evaluators, results):
            if isinstance(result, BaseException):
                evaluator.handle_failure(state, result)
            else:
                evaluator.apply(state, result)

    def _record_behavior(self, state: InterviewState, utterance: str, analysis: BehaviorAnalysis) -> None:
        state.add_behavior_entry(BehaviorLogEntry(message=utterance, analysis=analysis))
        flags = risk_flags_for(analysis)
        if flags:
            state.add_risk_flags(flags)
            logger.info(f"Session {state.session_id} risk flags: {', '.join(flags)}")

    async def _question_for(self, state: InterviewState, module: InterviewModule) -> str:
        cache = state.question_cache
        key = cache.make_key(module.kind, module.questions_asked, state.current_phase)
        cached = cache.get(key)
        if cached is not None:
            logger.debug(f"Question cache hit for {key}")
            return cached

        reply, generated = await self._interviewer.reaction_and_question(state, module)
        if generated:
            cache.set(key, reply)
        return reply

    async def _finish(self, state: InterviewState) -> SessionSnapshot:
        """
        Complete a session.

        Resolves and describes the personality type, marks the session
        completed, saves it, evicts it from the registry and schedules the
        competency export.
        """
        finalized = PersonalityEvaluator.finalize(state.personality_profile)
        state.set_accumulator(ModuleKind.PERSONALITY, await self._personality.enrich(finalized))
        snapshot = state.complete()
        await self._save(state)
        self._evict(state.session_id)
        logger.info(
            f"Session {state.session_id} completed: {state.completed_module_count()}/"
            f"{len(snapshot.modules)} modules, {len(snapshot.messages)} messages"
        )

        if snapshot.competency_scores and self._competency_client.enabled:
            task = asyncio.create_task(
                self._competency_client.submit(snapshot.user_id, snapshot.id, dict(snapshot.competency_scores))
            )
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
        return snapshot
