"""
Filesystem fragment text store.

Layout::

    {root}/{collection}/chunks/{fragment_id}.json   {"text": "..."} or a JSON string
    {root}/{collection}/chunks/{fragment_id}.txt    plain text
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

from ..models.schemas import FragmentRef
from ..utils.logging import get_logger


class LocalFragmentStore:
    """Reads fragment text from per-fragment files. Missing fragments yield None."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.logger = get_logger(__name__)

    def _chunk_dir(self, collection: str) -> Path:
        return self.root / collection / "chunks"

    def _safe_name(self, fragment_id: str) -> str:
        return fragment_id.replace("/", "_").replace("\\", "_")

    def write_text(self, collection: str, fragment_id: str, text: str) -> Path:
        """Store a fragment's text, used when ingesting material."""
        chunk_dir = self._chunk_dir(collection)
        chunk_dir.mkdir(parents=True, exist_ok=True)
        path = chunk_dir / f"{self._safe_name(fragment_id)}.json"
        path.write_text(json.dumps({"id": fragment_id, "text": text}), encoding="utf-8")
        return path

    def _read_one(self, ref: FragmentRef) -> Optional[str]:
        chunk_dir = self._chunk_dir(ref.collection)
        name = self._safe_name(ref.fragment_id)

        json_path = chunk_dir / f"{name}.json"
        if json_path.exists():
            data = json.loads(json_path.read_text(encoding="utf-8"))
            text = data.get("text") if isinstance(data, dict) else data
            return text if isinstance(text, str) else None

        txt_path = chunk_dir / f"{name}.txt"
        if txt_path.exists():
            return txt_path.read_text(encoding="utf-8")

        self.logger.debug(
            "fragment_missing", collection=ref.collection, fragment_id=ref.fragment_id
        )
        return None

    def _read_all(self, refs: List[FragmentRef]) -> List[Optional[str]]:
        return [self._read_one(ref) for ref in refs]

    async def fetch_texts(self, refs: List[FragmentRef]) -> List[Optional[str]]:
        return await asyncio.to_thread(self._read_all, refs)
