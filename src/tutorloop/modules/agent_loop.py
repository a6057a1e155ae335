"""
Agent Loop - produces the final answer for a turn.

State machine:

    COMPOSING --tool request--> AWAITING_TOOL_RESULT --result--> COMPOSING
    COMPOSING --plain text--> DONE
    COMPOSING --generation error / iteration cap--> FAILED

Every generation call counts as one iteration. Only the first tool call of
a response is acted on.
"""

import uuid
from typing import Callable, Optional

from ..collaborators.protocols import Generator
from ..core.config import TutorConfig, get_config
from ..exceptions import GenerationError, LoopExceededMaxIterations
from ..models.context import Session, ToolRequestPart, ToolResultPart, Turn
from ..models.enums import LoopState, Role
from ..models.schemas import GenerationRequest, GenerationResponse, LoopOutcome, ToolCall
from ..utils.error_handler import call_with_timeout
from ..utils.logging import ComponentLogger, get_logger
from .context_assembler import ContextAssembler
from .tool_executor import ToolExecutor, ToolInvocation

StateListener = Callable[[str, LoopState], None]


class AgentLoop:
    """
    Tool-calling generation loop.

    The loop appends to the session it is given; callers that need
    all-or-nothing commits pass a working copy. One AgentLoop serves many
    sessions concurrently, so loop state lives in ``run`` and is reported
    through the optional ``on_state`` listener and the returned LoopOutcome.
    """

    def __init__(
        self,
        generator: Generator,
        assembler: ContextAssembler,
        tools: Optional[ToolExecutor] = None,
        config: Optional[TutorConfig] = None,
        on_state: Optional[StateListener] = None,
    ):
        self.config = config or get_config()
        self.generator = generator
        self.assembler = assembler
        self.tools = tools or ToolExecutor(timeout_seconds=self.config.tool_timeout_seconds)
        self.on_state = on_state
        self.logger = get_logger(__name__)
        self.component_logger = ComponentLogger("agent_loop", echo=self.config.enable_rich_console)

    @property
    def max_iterations(self) -> int:
        return self.config.max_agent_iterations

    def _enter(self, session: Session, state: LoopState) -> LoopState:
        if self.on_state is not None:
            self.on_state(session.session_id, state)
        return state

    async def run(self, session: Session) -> LoopOutcome:
        """Run until a plain-text answer, a generation failure, or the iteration cap."""
        media = False
        tools_invoked: list[str] = []
        pending: list[str] = []

        self.component_logger.log_operation_start(
            "agent_loop", {"session_id": session.session_id}
        )

        for iteration in range(1, self.max_iterations + 1):
            self._enter(session, LoopState.COMPOSING)
            try:
                response = await self._generate(session)
            except GenerationError as e:
                self.component_logger.log_operation_error(
                    "agent_loop", e, {"session_id": session.session_id, "iteration": iteration}
                )
                return LoopOutcome(
                    state=self._enter(session, LoopState.FAILED),
                    text=e.user_message,
                    media=media,
                    iterations=iteration,
                    tools_invoked=tools_invoked,
                    pending_tool_calls=pending,
                    error=e.message,
                    error_kind=type(e).__name__,
                )

            if not response.wants_tool:
                text = response.text or ""
                session.append(Turn.model_text(text))
                self.component_logger.log_operation_complete(
                    "agent_loop",
                    details={
                        "session_id": session.session_id,
                        "iterations": iteration,
                        "tools_invoked": tools_invoked,
                    },
                )
                return LoopOutcome(
                    state=self._enter(session, LoopState.DONE),
                    text=text,
                    media=media,
                    iterations=iteration,
                    tools_invoked=tools_invoked,
                    pending_tool_calls=pending,
                )

            call = response.tool_calls[0]
            if len(response.tool_calls) > 1:
                self.logger.info(
                    "extra_tool_calls_ignored",
                    session_id=session.session_id,
                    acted_on=call.name,
                    ignored=[c.name for c in response.tool_calls[1:]],
                )

            invocation = await self._invoke_tool(session, call)
            tools_invoked.append(call.name)
            media = media or invocation.media
            if invocation.pending:
                pending.append(invocation.correlation_id)

        error = LoopExceededMaxIterations(
            self.max_iterations, details={"session_id": session.session_id}
        )
        self.logger.error(
            "agent_loop_exceeded_max_iterations",
            tools_invoked=tools_invoked,
            **error.details,
        )
        return LoopOutcome(
            state=self._enter(session, LoopState.FAILED),
            text=error.user_message,
            media=media,
            iterations=self.max_iterations,
            tools_invoked=tools_invoked,
            pending_tool_calls=pending,
            error=error.message,
            error_kind=type(error).__name__,
        )

    async def _generate(self, session: Session) -> GenerationResponse:
        request = GenerationRequest(
            context=self.assembler.assemble(session),
            tools=self.tools.definitions(),
        )
        try:
            return await call_with_timeout(
                self.generator.generate(request),
                timeout=self.config.collaborator_timeout_seconds,
                operation="generate",
            )
        except Exception as e:
            raise GenerationError(
                f"Generation failed: {e}",
                details={"session_id": session.session_id, "error_type": type(e).__name__},
            ) from e

    async def _invoke_tool(self, session: Session, call: ToolCall) -> ToolInvocation:
        correlation_id = call.call_id or f"call-{uuid.uuid4()}"
        session.append(
            Turn(
                role=Role.MODEL,
                parts=[
                    ToolRequestPart(
                        name=call.name, arguments=call.arguments, correlation_id=correlation_id
                    )
                ],
            )
        )

        self._enter(session, LoopState.AWAITING_TOOL_RESULT)
        invocation = await self.tools.invoke(
            call.name, call.arguments, correlation_id, session=session
        )

        if invocation.pending:
            session.pending_tool_calls[correlation_id] = call.name

        session.append(Turn(role=Role.SYSTEM, parts=[invocation.to_part()]))
        return invocation

    async def resume(self, session: Session, result: ToolResultPart) -> LoopOutcome:
        """Deliver a late out-of-band tool result and continue the loop."""
        session.append(Turn(role=Role.SYSTEM, parts=[result]))
        session.pending_tool_calls.pop(result.correlation_id, None)
        self.logger.info(
            "pending_tool_result_received",
            session_id=session.session_id,
            correlation_id=result.correlation_id,
            tool_name=result.name,
            status=result.status.value,
        )
        return await self.run(session)
