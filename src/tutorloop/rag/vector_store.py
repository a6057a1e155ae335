"""
ChromaDB vector search over fragment embeddings.
"""

import asyncio
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import chromadb

from ..models.schemas import SearchHit
from ..utils.logging import get_logger


class ChromaVectorSearch:
    """
    Nearest-neighbour search backed by ChromaDB collections.

    Collections use cosine distance; scores are reported as ``1 - distance``
    so that higher is better.

    Args:
        persist_directory: Storage directory, or None for an in-memory client
    """

    def __init__(self, persist_directory: Optional[str | Path] = None):
        if persist_directory is None:
            self.client = chromadb.EphemeralClient()
        else:
            Path(persist_directory).mkdir(parents=True, exist_ok=True)
            self.client = chromadb.PersistentClient(path=str(persist_directory))
        self.persist_directory = persist_directory
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    def _collection(self, name: str) -> Any:
        return self.client.get_or_create_collection(name=name, metadata={"hnsw:space": "cosine"})

    def add_fragments(
        self,
        collection: str,
        fragment_ids: Sequence[str],
        embeddings: Sequence[Sequence[float]],
        metadatas: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> None:
        """Index fragment embeddings. Existing ids are overwritten."""
        if len(fragment_ids) != len(embeddings):
            raise ValueError("fragment_ids and embeddings must have the same length")
        with self._lock:
            self._collection(collection).upsert(
                ids=list(fragment_ids),
                embeddings=[list(e) for e in embeddings],
                metadatas=list(metadatas) if metadatas else None,
            )
        self.logger.info("fragments_indexed", collection=collection, count=len(fragment_ids))

    def _search_sync(self, collection: str, vector: List[float], top_k: int) -> List[SearchHit]:
        with self._lock:
            coll = self._collection(collection)
            if coll.count() == 0:
                return []
            result = coll.query(
                query_embeddings=[vector],
                n_results=min(top_k, coll.count()),
                include=["distances"],
            )

        ids = result["ids"][0]
        distances = result["distances"][0]
        return [
            SearchHit(fragment_id=fid, score=1.0 - float(distance), collection=collection)
            for fid, distance in zip(ids, distances)
        ]

    async def search(self, collection: str, vector: List[float], top_k: int) -> List[SearchHit]:
        hits = await asyncio.to_thread(self._search_sync, collection, vector, top_k)
        self.logger.debug("vector_search", collection=collection, top_k=top_k, hits=len(hits))
        return hits
