"""
Gemini query embeddings via google-generativeai.
"""

import asyncio
from typing import List, Optional

import google.generativeai as genai

from ..utils.logging import get_logger


class GeminiEmbedder:
    """
    Embeds retrieval queries with a Gemini embedding model.

    The SDK call is blocking, so it runs on a worker thread.
    """

    def __init__(
        self,
        model_name: str = "models/gemini-embedding-001",
        api_key: Optional[str] = None,
        task_type: str = "retrieval_query",
    ):
        if api_key:
            genai.configure(api_key=api_key)
        self.model_name = model_name
        self.task_type = task_type
        self.logger = get_logger(__name__)

    def _embed_sync(self, text: str, output_dimension: int) -> List[float]:
        result = genai.embed_content(
            model=self.model_name,
            content=text,
            task_type=self.task_type,
            output_dimensionality=output_dimension,
        )
        return list(result["embedding"])

    async def embed(self, text: str, output_dimension: int) -> List[float]:
        vector = await asyncio.to_thread(self._embed_sync, text, output_dimension)
        self.logger.debug(
            "query_embedded", model=self.model_name, dimension=len(vector), chars=len(text)
        )
        return vector
