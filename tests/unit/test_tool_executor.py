"""
Unit tests for ToolExecutor.
"""

import asyncio

import pytest

from tutorloop.models.context import Session
from tutorloop.models.enums import ToolStatus
from tutorloop.models.schemas import ToolDefinition, ToolOutcome, ToolParameter
from tutorloop.modules.tool_executor import ToolExecutor

DEFINE = ToolDefinition(
    name="define",
    description="Define a glossary term",
    parameters=[ToolParameter(name="term", type="string", description="Term to define")],
)


@pytest.fixture
def executor():
    executor = ToolExecutor(timeout_seconds=0.5)

    @executor.tool(DEFINE)
    def define(term: str) -> str:
        return {"osmosis": "diffusion of water"}[term]

    return executor


class TestRegistration:
    def test_register_and_list(self, executor):
        assert executor.list_tools() == ["define"]
        assert executor.validate_tool("define")
        assert not executor.validate_tool("missing")
        assert executor.definitions() == [DEFINE]

    def test_reregister_replaces(self, executor):
        executor.register(DEFINE, lambda term: "new")

        assert executor.list_tools() == ["define"]


class TestInvoke:
    @pytest.mark.asyncio
    async def test_sync_tool_success(self, executor):
        result = await executor.invoke("define", {"term": "osmosis"}, "call-1")

        assert result.success
        assert result.status == ToolStatus.SUCCESS
        assert result.payload == "diffusion of water"
        assert result.correlation_id == "call-1"
        assert result.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_async_tool_success(self, executor):
        async def quiz(topic: str) -> dict:
            return {"question": f"What is {topic}?"}

        executor.register(ToolDefinition(name="quiz", description="Make a quiz question"), quiz)
        result = await executor.invoke("quiz", {"topic": "osmosis"}, "call-2")

        assert result.payload == {"question": "What is osmosis?"}

    @pytest.mark.asyncio
    async def test_unknown_tool_is_failure(self, executor):
        result = await executor.invoke("missing", {}, "call-3")

        assert result.status == ToolStatus.FAILURE
        assert "Unknown tool" in result.error
        assert result.correlation_id == "call-3"

    @pytest.mark.asyncio
    async def test_exception_is_failure(self, executor):
        result = await executor.invoke("define", {"term": "entropy"}, "call-4")

        assert result.status == ToolStatus.FAILURE
        assert "Tool execution failed" in result.error

    @pytest.mark.asyncio
    async def test_bad_arguments_are_failure(self, executor):
        result = await executor.invoke("define", {"word": "osmosis"}, "call-5")

        assert result.status == ToolStatus.FAILURE

    @pytest.mark.asyncio
    async def test_timeout_is_failure(self, executor):
        async def slow() -> str:
            await asyncio.sleep(5)
            return "never"

        executor.register(ToolDefinition(name="slow", description="Slow tool"), slow)
        result = await executor.invoke("slow", {}, "call-6")

        assert result.status == ToolStatus.FAILURE
        assert "timeout" in result.error

    @pytest.mark.asyncio
    async def test_pending_media_outcome(self, executor):
        async def render(topic: str) -> ToolOutcome:
            return ToolOutcome(payload={"job_id": "job-1"}, pending=True, media=True)

        executor.register(ToolDefinition(name="render", description="Render a video"), render)
        result = await executor.invoke("render", {"topic": "osmosis"}, "call-7")

        assert result.pending
        assert result.media
        assert result.payload == {"job_id": "job-1"}

        part = result.to_part()
        assert part.status == ToolStatus.PENDING
        assert part.correlation_id == "call-7"


class TestSessionBoundTools:
    NOTE = ToolDefinition(name="note", description="Remember a note on the session")

    @pytest.mark.asyncio
    async def test_receives_session(self, executor):
        async def note(session: Session, text: str) -> str:
            session.summary = text
            return "noted"

        executor.register(self.NOTE, note, bind_session=True)
        session = Session(session_id="s1")

        result = await executor.invoke("note", {"text": "likes diagrams"}, "call-1", session=session)

        assert result.success
        assert session.summary == "likes diagrams"

    @pytest.mark.asyncio
    async def test_sync_tool_receives_session(self, executor):
        executor.register(self.NOTE, lambda session, text: session.session_id, bind_session=True)

        result = await executor.invoke(
            "note", {"text": "x"}, "call-1", session=Session(session_id="s9")
        )

        assert result.payload == "s9"

    @pytest.mark.asyncio
    async def test_missing_session_is_failure(self, executor):
        executor.register(self.NOTE, lambda session, text: "noted", bind_session=True)

        result = await executor.invoke("note", {"text": "x"}, "call-1")

        assert result.status == ToolStatus.FAILURE
        assert "needs a session" in result.error

    @pytest.mark.asyncio
    async def test_reregistering_unbound_drops_session(self, executor):
        executor.register(self.NOTE, lambda session, text: "bound", bind_session=True)
        executor.register(self.NOTE, lambda text: "plain")

        result = await executor.invoke("note", {"text": "x"}, "call-1", session=Session(session_id="s1"))

        assert result.payload == "plain"
