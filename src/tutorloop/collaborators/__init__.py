"""External collaborator contracts."""

from .protocols import (
    Classifier,
    Embedder,
    FragmentTextStore,
    Generator,
    SessionStore,
    Summarizer,
    Titler,
    VectorSearch,
)

__all__ = [
    "Classifier",
    "Embedder",
    "FragmentTextStore",
    "Generator",
    "SessionStore",
    "Summarizer",
    "Titler",
    "VectorSearch",
]
