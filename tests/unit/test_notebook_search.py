"""
Tests for the in-loop notebook search tool.
"""

import pytest

from tests.fakes import FakeVectorSearch
from tutorloop.exceptions import RetrievalDegraded
from tutorloop.models.context import Session
from tutorloop.models.enums import ToolStatus
from tutorloop.modules.retriever import Retriever
from tutorloop.modules.tool_executor import ToolExecutor
from tutorloop.tools.notebook_search import (
    NO_RESULTS_MESSAGE,
    NOTEBOOK_SEARCH_TOOL_NAME,
    create_notebook_search_tool,
)


@pytest.fixture
def retriever(embedder, vector_search, fragment_store, config):
    return Retriever(embedder, vector_search, fragment_store, config=config)


@pytest.mark.asyncio
async def test_results_are_cached_on_session(retriever, embedder):
    _, search_notebook = create_notebook_search_tool(retriever)
    session = Session(session_id="s1")

    payload = await search_notebook(session, query="osmosis across membranes")

    assert [r["id"] for r in payload["results"]] == ["frag-1", "frag-2"]
    assert payload["results"][0]["text"].startswith("Osmosis is")
    assert list(session.fragment_cache) == ["frag-1", "frag-2"]
    assert embedder.calls == ["osmosis across membranes"]


@pytest.mark.asyncio
async def test_no_hits_returns_message(embedder, fragment_store, config):
    retriever = Retriever(embedder, FakeVectorSearch(), fragment_store, config=config)
    _, search_notebook = create_notebook_search_tool(retriever)

    payload = await search_notebook(Session(session_id="s1"), query="mitochondria")

    assert payload == {"results": [], "message": NO_RESULTS_MESSAGE}


@pytest.mark.asyncio
async def test_degraded_retrieval_raises(retriever, embedder):
    embedder.error = ConnectionError("embedding quota")
    _, search_notebook = create_notebook_search_tool(retriever)

    with pytest.raises(RetrievalDegraded):
        await search_notebook(Session(session_id="s1"), query="osmosis")


@pytest.mark.asyncio
async def test_failure_reaches_model_as_negative_result(retriever, embedder):
    embedder.error = ConnectionError("embedding quota")
    executor = ToolExecutor(timeout_seconds=1.0)
    definition, search_notebook = create_notebook_search_tool(retriever)
    executor.register(definition, search_notebook, bind_session=True)

    result = await executor.invoke(
        NOTEBOOK_SEARCH_TOOL_NAME, {"query": "osmosis"}, "call-1", session=Session(session_id="s1")
    )

    assert result.status == ToolStatus.FAILURE
    assert "Retrieval failed at embed" in result.error


def test_definition_schema(retriever):
    definition, _ = create_notebook_search_tool(retriever)
    params = definition.to_function_schema()["function"]["parameters"]

    assert definition.name == "search_notebook"
    assert params["required"] == ["query"]
