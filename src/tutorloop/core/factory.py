"""
Default wiring of the tutoring pipeline.

Builds a TutorPipeline from configuration using the LiteLLM classifier,
summarizer, titler and generator, Gemini embeddings, ChromaDB search, filesystem
fragment text and the JSON session store.
"""

from typing import Optional

from ..llm.client import LLMClient
from ..llm.collaborators import (
    LiteLLMClassifier,
    LiteLLMGenerator,
    LiteLLMSummarizer,
    LiteLLMTitler,
)
from ..modules.tool_executor import ToolExecutor
from ..rag.embeddings import GeminiEmbedder
from ..rag.fragment_store import LocalFragmentStore
from ..rag.vector_store import ChromaVectorSearch
from ..tools.media_tools import create_video_generation_tool
from ..utils.logging import get_logger
from .config import TutorConfig, get_config
from .persistence import JsonSessionStore
from .pipeline import TutorPipeline

logger = get_logger(__name__)


def build_tools(config: TutorConfig) -> ToolExecutor:
    """Tool registry with the tools enabled by configuration."""
    executor = ToolExecutor(timeout_seconds=config.tool_timeout_seconds)
    if config.video_render_endpoint:
        definition, func = create_video_generation_tool(config.video_render_endpoint)
        executor.register(definition, func)
    return executor


def build_pipeline(
    config: Optional[TutorConfig] = None, tools: Optional[ToolExecutor] = None
) -> TutorPipeline:
    """
    Assemble a pipeline with the default adapters.

    Args:
        config: Configuration (defaults to the global config)
        tools: Tool registry (defaults to ``build_tools(config)``)
    """
    config = config or get_config()

    client = LLMClient(
        default_model=config.generation_model,
        api_key=config.gemini_api_key,
        fallback_models=config.fallback_model_list,
        max_retries=config.llm_max_retries,
        timeout=config.collaborator_timeout_seconds,
    )

    titler = None
    if config.auto_title_sessions:
        titler = LiteLLMTitler(client, model=config.title_model)

    pipeline = TutorPipeline(
        classifier=LiteLLMClassifier(client, model=config.classifier_model),
        embedder=GeminiEmbedder(config.embedding_model, api_key=config.gemini_api_key),
        vector_search=ChromaVectorSearch(config.vector_store_dir),
        fragment_store=LocalFragmentStore(config.fragment_store_dir),
        summarizer=LiteLLMSummarizer(client, model=config.summarizer_model),
        generator=LiteLLMGenerator(
            client,
            model=config.generation_model,
            temperature=config.generation_temperature,
        ),
        store=JsonSessionStore(config.session_store_dir),
        titler=titler,
        tools=tools or build_tools(config),
        config=config,
    )
    logger.info(
        "pipeline_built",
        generation_model=config.generation_model,
        classifier_model=config.classifier_model,
        collections=config.retrieval_collections,
    )
    return pipeline
