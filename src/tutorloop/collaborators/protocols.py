"""
Contracts for the external collaborators the pipeline depends on.

Concrete adapters live in ``tutorloop.llm``, ``tutorloop.rag`` and
``tutorloop.core.persistence``; tests substitute in-memory fakes.
"""

from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from ..models.context import StoredSession, Turn
from ..models.schemas import (
    ClassificationRequest,
    ClassificationResult,
    FragmentRef,
    GenerationRequest,
    GenerationResponse,
    SearchHit,
)


@runtime_checkable
class SessionStore(Protocol):
    """Durable session storage."""

    async def read(self, session_id: str) -> Optional[StoredSession]:
        """Return the stored session, or None when it does not exist."""
        ...

    async def write(
        self, session_id: str, *, summary: Optional[str] = None, title: Optional[str] = None
    ) -> None:
        """Apply a partial update. Only the fields given are changed."""
        ...

    async def append_turns(self, session_id: str, turns: Sequence[Turn]) -> None:
        ...


class Classifier(Protocol):
    async def classify(
        self, request: ClassificationRequest
    ) -> ClassificationResult | dict[str, Any]:
        """Raw dicts are validated against ClassificationResult by the router."""
        ...


class Embedder(Protocol):
    async def embed(self, text: str, output_dimension: int) -> list[float]: ...


class VectorSearch(Protocol):
    async def search(
        self, collection: str, vector: Sequence[float], top_k: int
    ) -> list[SearchHit]:
        """Hits ranked by score, best first."""
        ...


class FragmentTextStore(Protocol):
    async def fetch_texts(self, refs: Sequence[FragmentRef]) -> list[Optional[str]]:
        """Texts in the same order and length as ``refs``; None for missing entries."""
        ...


class Summarizer(Protocol):
    async def summarize(self, existing_summary: str, turns: Sequence[Turn]) -> str: ...


class Generator(Protocol):
    async def generate(self, request: GenerationRequest) -> GenerationResponse: ...


class Titler(Protocol):
    async def title(self, turns: Sequence[Turn]) -> str:
        """A short topic title for the conversation so far."""
        ...
