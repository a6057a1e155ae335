"""Retrieval adapters: Gemini embeddings, ChromaDB search and fragment text."""

from .embeddings import GeminiEmbedder
from .fragment_store import LocalFragmentStore
from .vector_store import ChromaVectorSearch

__all__ = ["GeminiEmbedder", "LocalFragmentStore", "ChromaVectorSearch"]
