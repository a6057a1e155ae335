"""
Tests for the retrieval adapters and the video tool.

Gemini and the render service are mocked; ChromaDB runs in memory.
"""

import json
import uuid

import httpx
import pytest

from tutorloop.models.schemas import FragmentRef, ToolOutcome
from tutorloop.rag.embeddings import GeminiEmbedder
from tutorloop.rag.fragment_store import LocalFragmentStore
from tutorloop.rag.vector_store import ChromaVectorSearch
from tutorloop.tools.media_tools import VIDEO_TOOL_NAME, create_video_generation_tool


class TestLocalFragmentStore:
    @pytest.mark.asyncio
    async def test_fetch_preserves_order_and_skips_missing(self, tmp_path):
        store = LocalFragmentStore(tmp_path)
        store.write_text("notebook", "frag-1", "Osmosis moves water.")
        txt_dir = tmp_path / "notebook" / "chunks"
        (txt_dir / "frag-2.txt").write_text("Plain text fragment.", encoding="utf-8")

        texts = await store.fetch_texts(
            [
                FragmentRef(collection="notebook", fragment_id="frag-2"),
                FragmentRef(collection="notebook", fragment_id="missing"),
                FragmentRef(collection="notebook", fragment_id="frag-1"),
            ]
        )

        assert texts == ["Plain text fragment.", None, "Osmosis moves water."]

    @pytest.mark.asyncio
    async def test_json_string_fragment(self, tmp_path):
        chunk_dir = tmp_path / "notebook" / "chunks"
        chunk_dir.mkdir(parents=True)
        (chunk_dir / "frag-3.json").write_text(json.dumps("Just a string."), encoding="utf-8")

        texts = await LocalFragmentStore(tmp_path).fetch_texts(
            [FragmentRef(collection="notebook", fragment_id="frag-3")]
        )

        assert texts == ["Just a string."]

    def test_write_text_sanitizes_ids(self, tmp_path):
        path = LocalFragmentStore(tmp_path).write_text("notebook", "doc/1", "x")

        assert path.name == "doc_1.json"
        assert json.loads(path.read_text(encoding="utf-8"))["id"] == "doc/1"

    @pytest.mark.asyncio
    async def test_corrupt_json_raises(self, tmp_path):
        chunk_dir = tmp_path / "notebook" / "chunks"
        chunk_dir.mkdir(parents=True)
        (chunk_dir / "bad.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(json.JSONDecodeError):
            await LocalFragmentStore(tmp_path).fetch_texts(
                [FragmentRef(collection="notebook", fragment_id="bad")]
            )


class TestChromaVectorSearch:
    @pytest.fixture
    def collection(self):
        return f"notebook-{uuid.uuid4().hex[:8]}"

    @pytest.mark.asyncio
    async def test_search_ranks_by_similarity(self, collection):
        search = ChromaVectorSearch()
        search.add_fragments(
            collection,
            ["near", "far"],
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
        )

        hits = await search.search(collection, [0.9, 0.1, 0.0], top_k=2)

        assert [h.fragment_id for h in hits] == ["near", "far"]
        assert hits[0].score > hits[1].score
        assert hits[0].collection == collection

    @pytest.mark.asyncio
    async def test_empty_collection(self, collection):
        hits = await ChromaVectorSearch().search(collection, [1.0, 0.0], top_k=5)

        assert hits == []

    def test_mismatched_lengths_rejected(self, collection):
        with pytest.raises(ValueError):
            ChromaVectorSearch().add_fragments(collection, ["a", "b"], [[1.0, 0.0]])


class TestGeminiEmbedder:
    @pytest.mark.asyncio
    async def test_embed_calls_sdk(self, mocker):
        embed_content = mocker.patch(
            "tutorloop.rag.embeddings.genai.embed_content",
            return_value={"embedding": [0.1, 0.2, 0.3]},
        )
        embedder = GeminiEmbedder()

        vector = await embedder.embed("osmosis", 3)

        assert vector == [0.1, 0.2, 0.3]
        kwargs = embed_content.call_args.kwargs
        assert kwargs["content"] == "osmosis"
        assert kwargs["output_dimensionality"] == 3
        assert kwargs["task_type"] == "retrieval_query"

    @pytest.mark.asyncio
    async def test_sdk_errors_propagate(self, mocker):
        mocker.patch(
            "tutorloop.rag.embeddings.genai.embed_content", side_effect=RuntimeError("quota")
        )

        with pytest.raises(RuntimeError, match="quota"):
            await GeminiEmbedder().embed("osmosis", 3)


class TestVideoTool:
    @pytest.mark.asyncio
    async def test_submits_job_and_returns_pending(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, json={"jobId": "job-42"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            definition, video_gen = create_video_generation_tool(
                "https://render.example/jobs", client=client
            )
            outcome = await video_gen(topic="osmosis", level="advanced")

        assert definition.name == VIDEO_TOOL_NAME
        assert seen["body"] == {"topic": "osmosis", "level": "advanced"}
        assert isinstance(outcome, ToolOutcome)
        assert outcome.pending and outcome.media
        assert outcome.payload["job_id"] == "job-42"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))

        async with httpx.AsyncClient(transport=transport) as client:
            _, video_gen = create_video_generation_tool("https://render.example/jobs", client=client)
            with pytest.raises(httpx.HTTPStatusError):
                await video_gen(topic="osmosis")

    def test_definition_schema(self):
        definition, _ = create_video_generation_tool("https://render.example/jobs")
        schema = definition.to_function_schema()

        params = schema["function"]["parameters"]
        assert params["required"] == ["topic"]
        assert params["properties"]["level"]["enum"] == ["beginner", "intermediate", "advanced"]
