"""
Tool Executor - runs tools requested by the generation collaborator.

Tools are plain Python callables (sync or async) registered with a
ToolDefinition. A session-bound tool also receives the working Session as
its first argument. Invocation never raises: failures and timeouts come back as
negative results so the agent loop can feed them to the model.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..exceptions import ToolInvocationFailed
from ..models.context import Session, ToolResultPart
from ..models.enums import ToolStatus
from ..models.schemas import ToolDefinition, ToolOutcome
from ..utils.logging import get_logger


@dataclass
class ToolInvocation:
    """Result of one tool call."""

    name: str
    correlation_id: str
    status: ToolStatus
    payload: Any = None
    error: Optional[str] = None
    media: bool = False
    execution_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    @property
    def pending(self) -> bool:
        return self.status == ToolStatus.PENDING

    def to_part(self) -> ToolResultPart:
        return ToolResultPart(
            name=self.name,
            correlation_id=self.correlation_id,
            status=self.status,
            payload=self.payload,
            error=self.error,
        )


class ToolExecutor:
    """
    Registry and runner for tools.

    Example:
        executor = ToolExecutor(timeout_seconds=30)

        @executor.tool(ToolDefinition(name="define", description="Define a term"))
        async def define(term: str) -> str:
            return glossary[term]

        result = await executor.invoke("define", {"term": "entropy"}, "call-1")
    """

    def __init__(self, timeout_seconds: float = 60.0):
        self.timeout_seconds = timeout_seconds
        self._registry: Dict[str, Callable[..., Any]] = {}
        self._definitions: Dict[str, ToolDefinition] = {}
        self._session_bound: set[str] = set()
        self.logger = get_logger(__name__)

    def register(
        self, definition: ToolDefinition, func: Callable[..., Any], bind_session: bool = False
    ) -> None:
        """
        Register ``func`` under ``definition.name``, replacing any earlier tool.

        With ``bind_session`` the tool is called as ``func(session, **arguments)``.
        """
        self._registry[definition.name] = func
        self._definitions[definition.name] = definition
        if bind_session:
            self._session_bound.add(definition.name)
        else:
            self._session_bound.discard(definition.name)
        self.logger.debug("tool_registered", tool_name=definition.name)

    def tool(self, definition: ToolDefinition) -> Callable:
        """Decorator form of ``register``."""
        def decorator(func: Callable) -> Callable:
            self.register(definition, func)
            return func
        return decorator

    def definitions(self) -> list[ToolDefinition]:
        return list(self._definitions.values())

    def list_tools(self) -> list[str]:
        """Get list of registered tool names."""
        return list(self._registry.keys())

    def validate_tool(self, name: str) -> bool:
        """Check if tool is registered and available."""
        return name in self._registry

    async def invoke(
        self,
        name: str,
        arguments: Dict[str, Any],
        correlation_id: str,
        session: Optional[Session] = None,
    ) -> ToolInvocation:
        """
        Run a tool with a timeout and capture its outcome.

        A tool may return any payload (success) or a ToolOutcome to report a
        pending out-of-band result or a media artifact.
        """
        start = time.perf_counter()

        if name not in self._registry:
            return self._failed(
                ToolInvocationFailed(f"Unknown tool '{name}'", name, correlation_id), start
            )

        func = self._registry[name]
        args: tuple[Any, ...] = ()
        if name in self._session_bound:
            if session is None:
                return self._failed(
                    ToolInvocationFailed(
                        f"Tool '{name}' needs a session", name, correlation_id
                    ),
                    start,
                )
            args = (session,)

        try:
            if inspect.iscoroutinefunction(func):
                result = await asyncio.wait_for(
                    func(*args, **arguments), timeout=self.timeout_seconds
                )
            else:
                result = await asyncio.wait_for(
                    asyncio.to_thread(func, *args, **arguments), timeout=self.timeout_seconds
                )
        except asyncio.TimeoutError:
            return self._failed(
                ToolInvocationFailed(
                    f"Tool execution exceeded {self.timeout_seconds}s timeout",
                    name,
                    correlation_id,
                ),
                start,
            )
        except Exception as e:
            return self._failed(
                ToolInvocationFailed(
                    f"Tool execution failed: {e}",
                    name,
                    correlation_id,
                    details={"error_type": type(e).__name__},
                ),
                start,
            )

        execution_time = (time.perf_counter() - start) * 1000
        if isinstance(result, ToolOutcome):
            status = ToolStatus.PENDING if result.pending else ToolStatus.SUCCESS
            invocation = ToolInvocation(
                name=name,
                correlation_id=correlation_id,
                status=status,
                payload=result.payload,
                media=result.media,
                execution_time_ms=execution_time,
            )
        else:
            invocation = ToolInvocation(
                name=name,
                correlation_id=correlation_id,
                status=ToolStatus.SUCCESS,
                payload=result,
                execution_time_ms=execution_time,
            )

        self.logger.info(
            "tool_invoked",
            tool_name=name,
            correlation_id=correlation_id,
            status=invocation.status.value,
            execution_time_ms=round(execution_time, 2),
        )
        return invocation

    def _failed(self, error: ToolInvocationFailed, start: float) -> ToolInvocation:
        self.logger.warning("tool_invocation_failed", **error.details, error=error.message)
        return ToolInvocation(
            name=error.tool_name,
            correlation_id=error.correlation_id or "",
            status=ToolStatus.FAILURE,
            error=error.message,
            execution_time_ms=(time.perf_counter() - start) * 1000,
        )
