"""
In-memory fakes for every external collaborator, plus helpers for building
classifier and generator responses.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from tutorloop.models.context import StoredSession, Turn
from tutorloop.models.schemas import (
    ClassificationRequest,
    FragmentRef,
    GenerationRequest,
    GenerationResponse,
    SearchHit,
    ToolCall,
)


IN_DOMAIN = {
    "in_domain": True,
    "out_of_domain_message": None,
    "retrieval_needed": False,
    "retrieval_query": None,
}


def in_domain(retrieval_query: Optional[str] = None) -> Dict[str, Any]:
    if retrieval_query is None:
        return dict(IN_DOMAIN)
    return dict(IN_DOMAIN, retrieval_needed=True, retrieval_query=retrieval_query)


def out_of_domain(message: str = "Let's stick to biology!") -> Dict[str, Any]:
    return {
        "in_domain": False,
        "out_of_domain_message": message,
        "retrieval_needed": False,
        "retrieval_query": None,
    }


def tool_call(name: str, call_id: str, **arguments: Any) -> GenerationResponse:
    return GenerationResponse(tool_calls=[ToolCall(name=name, arguments=arguments, call_id=call_id)])


def text_response(text: str) -> GenerationResponse:
    return GenerationResponse(text=text)


# ============================================================================
# Collaborator fakes
# ============================================================================


class FakeClassifier:
    """Returns a fixed result (or the result of a callable) and records requests."""

    def __init__(self, result: Union[Dict[str, Any], Callable[[ClassificationRequest], Any]] = None):
        self.result = result if result is not None else in_domain()
        self.requests: List[ClassificationRequest] = []
        self.error: Optional[Exception] = None

    async def classify(self, request: ClassificationRequest) -> Any:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if callable(self.result):
            return self.result(request)
        return dict(self.result)


class FakeEmbedder:
    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self.calls: List[str] = []
        self.error: Optional[Exception] = None

    async def embed(self, text: str, output_dimension: int) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return [0.1] * (self.dimension or output_dimension)


class FakeVectorSearch:
    """Hits per collection, returned best first."""

    def __init__(self, hits: Optional[Dict[str, List[SearchHit]]] = None):
        self.hits = hits or {}
        self.calls: List[str] = []
        self.failing: set[str] = set()

    async def search(self, collection: str, vector: Sequence[float], top_k: int) -> List[SearchHit]:
        self.calls.append(collection)
        if collection in self.failing:
            raise ConnectionError(f"search backend for {collection} unavailable")
        return list(self.hits.get(collection, []))[:top_k]


class FakeFragmentStore:
    def __init__(self, texts: Optional[Dict[str, str]] = None):
        self.texts = texts or {}
        self.requests: List[List[FragmentRef]] = []
        self.error: Optional[Exception] = None
        self.drop_last = False

    async def fetch_texts(self, refs: Sequence[FragmentRef]) -> List[Optional[str]]:
        self.requests.append(list(refs))
        if self.error is not None:
            raise self.error
        texts = [self.texts.get(ref.fragment_id) for ref in refs]
        return texts[:-1] if self.drop_last else texts


class FakeSummarizer:
    def __init__(self):
        self.calls: List[tuple[str, List[Turn]]] = []
        self.error: Optional[Exception] = None
        self.delay: float = 0.0

    async def summarize(self, existing_summary: str, turns: Sequence[Turn]) -> str:
        self.calls.append((existing_summary, list(turns)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return f"summary #{len(self.calls)} covering {len(turns)} turns"


class FakeTitler:
    def __init__(self, title: str = "Osmosis Basics"):
        self.title_text = title
        self.calls: List[List[Turn]] = []
        self.error: Optional[Exception] = None

    async def title(self, turns: Sequence[Turn]) -> str:
        self.calls.append(list(turns))
        if self.error is not None:
            raise self.error
        return self.title_text


class ScriptedGenerator:
    """
    Plays back scripted responses, then answers with plain text.

    A script entry may be a GenerationResponse, an exception to raise, or a
    callable taking the GenerationRequest.
    """

    def __init__(self, script: Optional[List[Any]] = None, default_text: str = "Here's the answer."):
        self.script = list(script or [])
        self.default_text = default_text
        self.requests: List[GenerationRequest] = []
        self.delay: float = 0.0

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.script:
            return text_response(self.default_text)
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return step


class InMemorySessionStore:
    def __init__(self):
        self.sessions: Dict[str, StoredSession] = {}
        self.summary_writes: List[tuple[str, str]] = []
        self.title_writes: List[tuple[str, str]] = []
        self.read_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.append_error: Optional[Exception] = None

    async def read(self, session_id: str) -> Optional[StoredSession]:
        if self.read_error is not None:
            raise self.read_error
        stored = self.sessions.get(session_id)
        return stored.model_copy(deep=True) if stored else None

    async def write(
        self, session_id: str, *, summary: Optional[str] = None, title: Optional[str] = None
    ) -> None:
        if self.write_error is not None:
            raise self.write_error
        stored = self.sessions.setdefault(session_id, StoredSession(session_id=session_id))
        if summary is not None:
            stored.summary = summary
            self.summary_writes.append((session_id, summary))
        if title is not None:
            stored.title = title
            self.title_writes.append((session_id, title))

    async def append_turns(self, session_id: str, turns: Sequence[Turn]) -> None:
        if self.append_error is not None:
            raise self.append_error
        stored = self.sessions.setdefault(session_id, StoredSession(session_id=session_id))
        stored.history.extend(t.model_copy(deep=True) for t in turns)


