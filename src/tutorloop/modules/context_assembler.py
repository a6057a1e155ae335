"""
Context Assembler - bounds the working window and assembles generation context.

Implements roll-up compaction: once history grows past twice the window, the
oldest turns are merged into the session summary by the summarization
collaborator and dropped, leaving the most recent ``window_size`` turns.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from ..collaborators.protocols import SessionStore, Summarizer
from ..core.config import TutorConfig, get_config
from ..exceptions import SummarizationDegraded
from ..models.context import Session, TextPart, Turn
from ..models.enums import Role
from ..models.schemas import AssembledContext
from ..utils.error_handler import call_with_timeout
from ..utils.logging import get_logger

SUMMARY_PREAMBLE_HEADER = "[Conversation summary so far]"


@dataclass
class CompactionResult:
    """A successful compaction."""

    turns_summarized: int
    turns_kept: int
    summary_generation: int
    duration_ms: float


@dataclass
class AppendResult:
    """Outcome of appending a turn, with any compaction it triggered."""

    compaction: Optional[CompactionResult] = None
    warnings: list[SummarizationDegraded] = field(default_factory=list)

    @property
    def compacted(self) -> bool:
        return self.compaction is not None


class ContextAssembler:
    """
    Context Assembler component.

    Responsibilities:
    - Append turns to session history
    - Compact history past ``2 * window_size`` turns via roll-up summarization
    - Persist the new summary before acknowledging compaction
    - Assemble the generation context with the summary as a synthetic preamble
    """

    def __init__(
        self,
        summarizer: Summarizer,
        store: Optional[SessionStore] = None,
        config: Optional[TutorConfig] = None,
    ):
        self.config = config or get_config()
        self.summarizer = summarizer
        self.store = store
        self.logger = get_logger(__name__)

    @property
    def window_size(self) -> int:
        return self.config.window_size

    def needs_compaction(self, session: Session) -> bool:
        return len(session.history) > 2 * self.window_size

    async def append_turn(self, session: Session, turn: Turn) -> AppendResult:
        """
        Append ``turn`` and compact if the history is over-size.

        Summarization failures never fail the append: the session is left
        uncompacted and the failure is returned as a warning.
        """
        session.append(turn)

        if not self.needs_compaction(session):
            return AppendResult()

        try:
            compaction = await self.compact(session)
        except SummarizationDegraded as warning:
            self.logger.warning(
                "summarization_degraded",
                session_id=session.session_id,
                history_length=len(session.history),
                **warning.details,
            )
            return AppendResult(warnings=[warning])

        return AppendResult(compaction=compaction)

    async def compact(self, session: Session) -> CompactionResult:
        """
        Summarize the oldest ``len(history) - window_size`` turns into the summary.

        The session is only modified after both the summarization call and the
        durable summary write succeed.

        Raises:
            SummarizationDegraded: If either step fails or times out
        """
        start = time.perf_counter()
        cut = len(session.history) - self.window_size
        to_summarize = session.history[:cut]

        try:
            new_summary = await call_with_timeout(
                self.summarizer.summarize(session.summary, to_summarize),
                timeout=self.config.collaborator_timeout_seconds,
                operation="summarize",
            )
        except Exception as e:
            raise SummarizationDegraded(
                f"Summarization failed: {e}",
                details={"stage": "summarize", "error_type": type(e).__name__},
            ) from e

        if not isinstance(new_summary, str) or not new_summary.strip():
            raise SummarizationDegraded(
                "Summarizer returned an empty summary", details={"stage": "summarize"}
            )

        if self.store is not None:
            try:
                await call_with_timeout(
                    self.store.write(session.session_id, summary=new_summary),
                    timeout=self.config.collaborator_timeout_seconds,
                    operation="store_summary",
                )
            except Exception as e:
                raise SummarizationDegraded(
                    f"Durable summary write failed: {e}",
                    details={"stage": "store_summary", "error_type": type(e).__name__},
                ) from e

        session.record_compaction(new_summary.strip(), keep=self.window_size)
        duration_ms = (time.perf_counter() - start) * 1000

        self.logger.info(
            "history_compacted",
            session_id=session.session_id,
            turns_summarized=len(to_summarize),
            turns_kept=len(session.history),
            generation=session.summary_generations,
            duration_ms=round(duration_ms, 2),
        )

        return CompactionResult(
            turns_summarized=len(to_summarize),
            turns_kept=len(session.history),
            summary_generation=session.summary_generations,
            duration_ms=duration_ms,
        )

    def assemble(self, session: Session) -> AssembledContext:
        """
        Build the context for generation without touching the session.

        When a summary exists, the returned history is a copy with the
        summary prepended as a user-role preamble turn.
        """
        working = list(session.history)
        if session.summary:
            preamble = Turn(
                role=Role.USER,
                parts=[TextPart(text=f"{SUMMARY_PREAMBLE_HEADER}\n{session.summary}")],
                preamble=True,
            )
            working.insert(0, preamble)

        return AssembledContext(
            working_history=working,
            carried_summary=session.summary,
            fragments=dict(session.fragment_cache),
        )
