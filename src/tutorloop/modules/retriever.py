"""
Retriever - grounds a turn in reference fragments.

Embeds the retrieval query, searches every configured collection, fetches
and truncates the matching fragment texts, and merges them into the
session's bounded fragment cache.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from ..collaborators.protocols import Embedder, FragmentTextStore, VectorSearch
from ..core.config import TutorConfig, get_config
from ..exceptions import RetrievalDegraded
from ..models.context import Session
from ..models.schemas import FragmentRef, RetrievedFragment, SearchHit
from ..utils.error_handler import call_with_timeout
from ..utils.logging import ComponentLogger, get_logger


@dataclass
class RetrievalOutcome:
    fragments: list[RetrievedFragment]
    warning: Optional[RetrievalDegraded] = None

    @property
    def degraded(self) -> bool:
        return self.warning is not None


class Retriever:
    """
    Retriever component.

    Never raises for collaborator failures: they become an empty result with
    a RetrievalDegraded warning and the session's cached fragments are left
    as they were.
    """

    def __init__(
        self,
        embedder: Embedder,
        search: VectorSearch,
        fragment_store: FragmentTextStore,
        config: Optional[TutorConfig] = None,
        collections: Optional[Sequence[str]] = None,
    ):
        self.config = config or get_config()
        self.embedder = embedder
        self.search = search
        self.fragment_store = fragment_store
        self.collections = list(collections or self.config.retrieval_collections)
        self.logger = get_logger(__name__)
        self.component_logger = ComponentLogger("retriever", echo=self.config.enable_rich_console)

    async def retrieve(
        self,
        session: Session,
        query: str,
        top_k: Optional[int] = None,
        vector_dim: Optional[int] = None,
    ) -> RetrievalOutcome:
        """
        Retrieve up to ``top_k`` fragments for ``query``, best first.

        Returned fragments are also merged into ``session.fragment_cache``,
        replacing any earlier text cached under the same id.
        """
        if top_k is None:
            top_k = self.config.retrieval_top_k
        if vector_dim is None:
            vector_dim = self.config.vector_dim
        timeout = self.config.collaborator_timeout_seconds

        self.component_logger.log_operation_start(
            "retrieval", {"session_id": session.session_id, "top_k": top_k}
        )

        try:
            vector = await call_with_timeout(
                self.embedder.embed(query, vector_dim), timeout=timeout, operation="embed"
            )
        except Exception as e:
            return self._degraded(session, "embed", e)

        if len(vector) != vector_dim:
            return self._degraded(
                session,
                "embed",
                ValueError(f"expected {vector_dim}-dimensional vector, got {len(vector)}"),
            )

        hits, failures = await self._search_all(vector, top_k, timeout)
        if failures and len(failures) == len(self.collections):
            return self._degraded(session, "search", failures[0])

        if not hits:
            self.component_logger.log_operation_complete(
                "retrieval", details={"session_id": session.session_id, "fragments": 0}
            )
            return RetrievalOutcome(fragments=[])

        refs = [FragmentRef(collection=h.collection, fragment_id=h.fragment_id) for h in hits]
        try:
            texts = await call_with_timeout(
                self.fragment_store.fetch_texts(refs), timeout=timeout, operation="fetch_fragments"
            )
        except Exception as e:
            return self._degraded(session, "fetch", e)

        if len(texts) != len(refs):
            return self._degraded(
                session,
                "fetch",
                ValueError(f"fragment store returned {len(texts)} texts for {len(refs)} ids"),
            )

        fragments = self._build_fragments(hits, texts)
        for fragment in fragments:
            session.remember_fragment(
                fragment.id, fragment.text, max_entries=self.config.max_cached_fragments
            )

        self.component_logger.log_operation_complete(
            "retrieval",
            details={
                "session_id": session.session_id,
                "fragments": len(fragments),
                "missing": len(hits) - len(fragments),
            },
        )
        return RetrievalOutcome(fragments=fragments)

    async def _search_all(
        self, vector: Sequence[float], top_k: int, timeout: float
    ) -> tuple[list[SearchHit], list[Exception]]:
        hits: list[SearchHit] = []
        failures: list[Exception] = []

        for collection in self.collections:
            try:
                found = await call_with_timeout(
                    self.search.search(collection, vector, top_k),
                    timeout=timeout,
                    operation="vector_search",
                )
            except Exception as e:
                self.logger.warning(
                    "collection_search_failed", collection=collection, error=str(e)
                )
                failures.append(e)
                continue
            hits.extend(
                h if h.collection else h.model_copy(update={"collection": collection})
                for h in found
            )

        if len(self.collections) > 1:
            # Merging collections needs a global ranking; sorted() is stable so
            # equal scores keep search order.
            hits = sorted(hits, key=lambda h: h.score, reverse=True)

        return hits[:top_k], failures

    def _build_fragments(
        self, hits: Sequence[SearchHit], texts: Sequence[Optional[str]]
    ) -> list[RetrievedFragment]:
        limit = self.config.fragment_char_limit
        fragments = []
        for hit, text in zip(hits, texts):
            if text is None:
                self.logger.debug("fragment_text_missing", fragment_id=hit.fragment_id)
                continue
            fragments.append(
                RetrievedFragment(
                    id=hit.fragment_id,
                    text=text[:limit],
                    source_rank=len(fragments),
                    score=hit.score,
                    collection=hit.collection,
                )
            )
        return fragments

    def _degraded(self, session: Session, stage: str, error: Exception) -> RetrievalOutcome:
        warning = RetrievalDegraded(
            f"Retrieval failed at {stage}: {error}",
            stage=stage,
            details={"session_id": session.session_id, "error_type": type(error).__name__},
        )
        self.logger.warning(
            "retrieval_degraded",
            session_id=session.session_id,
            stage=stage,
            error=str(error),
            cached_fragments=len(session.fragment_cache),
        )
        return RetrievalOutcome(fragments=[], warning=warning)
