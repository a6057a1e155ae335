"""
Pytest configuration and shared fixtures.

Collaborator fakes live in tests/fakes.py so test modules can import them.
"""

import pytest

from tests.fakes import (
    FakeClassifier,
    FakeEmbedder,
    FakeFragmentStore,
    FakeSummarizer,
    FakeVectorSearch,
    InMemorySessionStore,
    ScriptedGenerator,
)
from tutorloop.core.config import TutorConfig, reset_config
from tutorloop.core.pipeline import TutorPipeline
from tutorloop.models.schemas import SearchHit
from tutorloop.modules.tool_executor import ToolExecutor
from tutorloop.observability.metrics import MetricsCollector


@pytest.fixture(autouse=True)
def _reset_global_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path):
    """Small, fast configuration rooted in a temporary directory."""
    return TutorConfig(
        window_size=10,
        session_cache_capacity=500,
        retrieval_top_k=5,
        vector_dim=512,
        fragment_char_limit=500,
        max_cached_fragments=50,
        max_agent_iterations=5,
        collaborator_timeout_seconds=2.0,
        tool_timeout_seconds=2.0,
        session_store_dir=tmp_path / "sessions",
        fragment_store_dir=tmp_path / "notebooks",
        log_file=None,
    )


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def vector_search():
    return FakeVectorSearch(
        {
            "notebook": [
                SearchHit(fragment_id="frag-1", score=0.92),
                SearchHit(fragment_id="frag-2", score=0.81),
            ]
        }
    )


@pytest.fixture
def fragment_store():
    return FakeFragmentStore(
        {
            "frag-1": "Osmosis is the diffusion of water across a semipermeable membrane.",
            "frag-2": "Active transport moves molecules against their concentration gradient.",
        }
    )


@pytest.fixture
def summarizer():
    return FakeSummarizer()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def tools(config):
    return ToolExecutor(timeout_seconds=config.tool_timeout_seconds)


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def pipeline(
    config, classifier, embedder, vector_search, fragment_store, summarizer, generator, store, tools, metrics
):
    """Pipeline wired entirely with fakes."""
    return TutorPipeline(
        classifier=classifier,
        embedder=embedder,
        vector_search=vector_search,
        fragment_store=fragment_store,
        summarizer=summarizer,
        generator=generator,
        store=store,
        tools=tools,
        config=config,
        metrics=metrics,
    )
