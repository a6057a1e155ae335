"""
Tutor Pipeline - main orchestration class.

Coordinates the stages of a tutoring turn:

    request -> IntentRouter -> (Retriever) -> ContextAssembler -> AgentLoop -> answer

Every stage works on a private copy of the cached session. The copy is
committed back to the SessionCache at two checkpoints only: after a
successful compaction (its summary is already durable) and when the turn
completes. A cancelled or aborted turn leaves no partial turn behind.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from ..collaborators.protocols import (
    Classifier,
    Embedder,
    FragmentTextStore,
    Generator,
    SessionStore,
    Summarizer,
    Titler,
    VectorSearch,
)
from ..exceptions import ClassificationError, TutorLoopError, UnknownToolCorrelation
from ..models.context import Session, ToolResultPart, Turn
from ..models.enums import AnswerStatus, LoopState, ToolStatus
from ..models.schemas import LoopOutcome, TutorAnswer, TutorRequest
from ..modules.agent_loop import AgentLoop
from ..modules.context_assembler import ContextAssembler
from ..modules.intent_router import IntentRouter
from ..modules.retriever import Retriever
from ..modules.tool_executor import ToolExecutor
from ..observability.metrics import MetricsCollector, TurnRecord, get_metrics
from ..tools.notebook_search import NOTEBOOK_SEARCH_TOOL_NAME, create_notebook_search_tool
from ..utils.error_handler import ErrorHandler, call_with_timeout
from ..utils.logging import get_logger, turn_log_context
from .cache import SessionCache
from .config import TutorConfig, get_config
from .locks import SessionLockRegistry
from .persistence import hydrate_session


class TutorPipeline:
    """
    Conversational tutoring pipeline.

    Collaborators are injected; see ``tutorloop.core.factory`` for wiring the
    default LiteLLM, Gemini, Chroma and filesystem adapters.

    Example:
        pipeline = TutorPipeline(
            classifier=classifier,
            embedder=embedder,
            vector_search=search,
            fragment_store=fragments,
            summarizer=summarizer,
            generator=generator,
            store=JsonSessionStore("./data/sessions"),
        )
        answer = await pipeline.handle_turn(
            TutorRequest(session_id="s1", text="What is osmosis?")
        )
    """

    def __init__(
        self,
        *,
        classifier: Classifier,
        embedder: Embedder,
        vector_search: VectorSearch,
        fragment_store: FragmentTextStore,
        summarizer: Summarizer,
        generator: Generator,
        store: Optional[SessionStore] = None,
        titler: Optional[Titler] = None,
        tools: Optional[ToolExecutor] = None,
        cache: Optional[SessionCache] = None,
        config: Optional[TutorConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or get_config()
        self.logger = get_logger(__name__)

        self.store = store
        self.titler = titler
        self.cache = cache or SessionCache(capacity=self.config.session_cache_capacity)
        self.locks = SessionLockRegistry(enabled=self.config.serialize_session_turns)
        self.metrics = metrics or get_metrics()
        self.tools = tools or ToolExecutor(timeout_seconds=self.config.tool_timeout_seconds)

        self.router = IntentRouter(classifier, config=self.config)
        self.retriever = Retriever(embedder, vector_search, fragment_store, config=self.config)
        self.assembler = ContextAssembler(summarizer, store=store, config=self.config)
        self.agent_loop = AgentLoop(generator, self.assembler, tools=self.tools, config=self.config)

        if self.config.enable_notebook_search_tool and not self.tools.validate_tool(
            NOTEBOOK_SEARCH_TOOL_NAME
        ):
            definition, search_notebook = create_notebook_search_tool(self.retriever)
            self.tools.register(definition, search_notebook, bind_session=True)

        self.logger.info(
            "pipeline_initialized",
            cache_capacity=self.cache.capacity,
            window_size=self.config.window_size,
            max_iterations=self.config.max_agent_iterations,
            serialize_session_turns=self.locks.enabled,
            tools=self.tools.list_tools(),
        )

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(self, session_id: Optional[str] = None) -> Session:
        """Explicitly start a conversation, loading any durable state."""
        if session_id is None:
            session_id = f"session-{uuid.uuid4()}"
        async with self.locks.hold(session_id):
            session = await self._load_session(session_id)
        self.logger.info("session_started", session_id=session_id, turns=len(session.history))
        return session

    def end_session(self, session_id: str) -> None:
        """Drop a session from the cache. Durable state is untouched."""
        self.cache.delete(session_id)
        self.logger.info("session_ended", session_id=session_id)

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.cache.get(session_id)

    @asynccontextmanager
    async def _turn_scope(self, session_id: str) -> AsyncIterator[None]:
        with turn_log_context(session_id):
            async with self.locks.hold(session_id):
                yield

    async def _load_session(self, session_id: str) -> Session:
        session = self.cache.get(session_id)
        if session is not None:
            return session

        stored = None
        if self.store is not None:
            try:
                stored = await call_with_timeout(
                    self.store.read(session_id),
                    timeout=self.config.collaborator_timeout_seconds,
                    operation="session_read",
                )
            except Exception as e:
                self.logger.warning(
                    "session_hydration_failed", session_id=session_id, error=str(e)
                )
                self.metrics.record_degradation("HydrationFailed", session_id)

        session = hydrate_session(stored, session_id, self.config.hydration_turn_limit)
        self.cache.set(session_id, session)
        self.logger.debug(
            "session_loaded",
            session_id=session_id,
            hydrated=stored is not None,
            turns=len(session.history),
        )
        return session

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def handle_turn(self, request: TutorRequest) -> TutorAnswer:
        """Answer one learner turn. Only unexpected bugs escape as exceptions."""
        start = time.perf_counter()
        async with self._turn_scope(request.session_id):
            session = await self._load_session(request.session_id)
            working = session.model_copy(deep=True)
            warnings: list[TutorLoopError] = []

            try:
                classification = await self.router.classify(
                    working,
                    request.text,
                    request.domain_summary,
                    attachments_present=bool(request.attachments),
                )
            except ClassificationError as e:
                self.logger.error(
                    "classification_failed", **{"session_id": request.session_id, **e.to_dict()}
                )
                self.metrics.record_degradation(e.kind, request.session_id)
                text = self.config.classification_failed_message or e.user_message
                return self._finish(
                    start,
                    TutorAnswer(
                        session_id=request.session_id, text=text, status=AnswerStatus.FAILED
                    ),
                )

            if not classification.in_domain:
                message = classification.out_of_domain_message or ""
                working.append(Turn.user_text(request.text, request.attachments))
                working.append(Turn.model_text(message))
                await self._commit(working, working.history[-2:])
                return self._finish(
                    start,
                    TutorAnswer(
                        session_id=request.session_id,
                        text=message,
                        status=AnswerStatus.OUT_OF_DOMAIN,
                    ),
                )

            fragment_ids: list[str] = []
            if classification.retrieval_needed:
                with ErrorHandler.log_duration("retrieval", session_id=request.session_id):
                    retrieval = await self.retriever.retrieve(
                        working, classification.retrieval_query or request.text
                    )
                fragment_ids = [f.id for f in retrieval.fragments]
                if retrieval.warning is not None:
                    warnings.append(retrieval.warning)

            appended = await self.assembler.append_turn(
                working, Turn.user_text(request.text, request.attachments)
            )
            warnings.extend(appended.warnings)
            if appended.compacted:
                self._checkpoint_compaction(working)

            first_new = len(working.history) - 1
            outcome = await self.agent_loop.run(working)
            answer = await self._conclude(working, first_new, outcome, warnings)
            answer.fragment_ids = fragment_ids
            return self._finish(
                start, answer, compacted=appended.compacted, tools_invoked=outcome.tools_invoked
            )

    async def resume_tool_result(
        self,
        session_id: str,
        correlation_id: str,
        payload: Any = None,
        error: Optional[str] = None,
    ) -> TutorAnswer:
        """
        Deliver the result of an out-of-band tool call and continue the turn.

        Raises:
            UnknownToolCorrelation: If the session is not waiting on ``correlation_id``
        """
        start = time.perf_counter()
        async with self._turn_scope(session_id):
            session = await self._load_session(session_id)
            tool_name = session.pending_tool_calls.get(correlation_id)
            if tool_name is None:
                raise UnknownToolCorrelation(session_id, correlation_id)

            working = session.model_copy(deep=True)
            result = ToolResultPart(
                name=tool_name,
                correlation_id=correlation_id,
                status=ToolStatus.FAILURE if error else ToolStatus.SUCCESS,
                payload=payload,
                error=error,
            )
            first_new = len(working.history)
            outcome = await self.agent_loop.resume(working, result)
            answer = await self._conclude(working, first_new, outcome, [])
            return self._finish(start, answer, tools_invoked=outcome.tools_invoked)

    async def _conclude(
        self,
        working: Session,
        first_new: int,
        outcome: LoopOutcome,
        warnings: list[TutorLoopError],
    ) -> TutorAnswer:
        warning_names = [w.kind for w in warnings]
        for name in warning_names:
            self.metrics.record_degradation(name, working.session_id)

        if outcome.state == LoopState.FAILED:
            # Aborted: nothing from this turn is committed
            self.metrics.record_degradation(outcome.error_kind or "LoopFailed", working.session_id)
            return TutorAnswer(
                session_id=working.session_id,
                text=outcome.text,
                status=AnswerStatus.DEGRADED,
                media=outcome.media,
                warnings=warning_names,
                iterations=outcome.iterations,
            )

        await self._maybe_title(working)
        await self._commit(working, working.history[first_new:])

        status = AnswerStatus.PENDING_TOOL if outcome.pending_tool_calls else AnswerStatus.ANSWERED
        text = outcome.text
        if not text.strip() and outcome.media:
            text = self.config.pending_media_message

        return TutorAnswer(
            session_id=working.session_id,
            text=text,
            status=status,
            media=outcome.media,
            warnings=warning_names,
            iterations=outcome.iterations,
            pending_tool_calls=outcome.pending_tool_calls,
            title=working.title,
        )

    async def _maybe_title(self, working: Session) -> None:
        """Name the session once it holds a full exchange. Failures leave it untitled."""
        if self.titler is None or not self.config.auto_title_sessions:
            return
        if working.title is not None or len(working.history) < 2:
            return

        timeout = self.config.collaborator_timeout_seconds
        try:
            title = await call_with_timeout(
                self.titler.title(list(working.history)), timeout=timeout, operation="title"
            )
            title = title.strip()
            if not title:
                raise ValueError("titler returned an empty title")
            if self.store is not None:
                await call_with_timeout(
                    self.store.write(working.session_id, title=title),
                    timeout=timeout,
                    operation="session_write",
                )
        except Exception as e:
            self.logger.warning(
                "session_titling_failed", session_id=working.session_id, error=str(e)
            )
            self.metrics.record_degradation("TitlingFailed", working.session_id)
            return

        working.title = title
        self.logger.info("session_titled", session_id=working.session_id, title=title)

    def _checkpoint_compaction(self, working: Session) -> None:
        """Commit the compacted history, minus the in-flight user turn."""
        checkpoint = working.model_copy(deep=True)
        checkpoint.history = checkpoint.history[:-1]
        self.cache.set(working.session_id, checkpoint)
        self.logger.debug(
            "compaction_checkpoint_committed",
            session_id=working.session_id,
            turns=len(checkpoint.history),
        )

    async def _commit(self, working: Session, new_turns: list[Turn]) -> None:
        self.cache.set(working.session_id, working)
        if self.store is None or not new_turns:
            return
        try:
            await call_with_timeout(
                self.store.append_turns(working.session_id, new_turns),
                timeout=self.config.collaborator_timeout_seconds,
                operation="session_append",
            )
        except Exception as e:
            self.logger.warning(
                "session_persist_failed", session_id=working.session_id, error=str(e)
            )
            self.metrics.record_degradation("PersistFailed", working.session_id)

    def _finish(
        self,
        start: float,
        answer: TutorAnswer,
        compacted: bool = False,
        tools_invoked: Optional[list[str]] = None,
    ) -> TutorAnswer:
        latency_ms = (time.perf_counter() - start) * 1000
        self.metrics.record_turn(
            TurnRecord(
                session_id=answer.session_id,
                status=answer.status,
                latency_ms=latency_ms,
                iterations=answer.iterations,
                tools_invoked=tools_invoked or [],
                fragments_retrieved=len(answer.fragment_ids),
                compacted=compacted,
                warnings=answer.warnings,
            )
        )
        self.logger.info(
            "turn_completed",
            session_id=answer.session_id,
            status=answer.status.value,
            latency_ms=round(latency_ms, 2),
            iterations=answer.iterations,
            warnings=answer.warnings,
        )
        return answer
