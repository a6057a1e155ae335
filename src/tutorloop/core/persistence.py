"""
Durable session storage on the local filesystem.

Handles:
- Saving/loading session summaries and history as JSON, one file per session
- Partial summary updates after compaction
- Rebuilding an in-memory Session from stored history on a cache miss
"""

import asyncio
import json
import threading
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import quote

from ..models.context import Session, StoredSession, TextPart, Turn
from ..models.enums import Role
from ..utils.logging import get_logger


class JsonSessionStore:
    """
    Session store writing one JSON document per session.

    Writes are atomic (temp file + rename). File I/O runs in a worker thread
    so the event loop is never blocked.
    """

    def __init__(self, storage_dir: str | Path = "./data/sessions"):
        """
        Initialize the store.

        Args:
            storage_dir: Directory to store session files
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger(__name__)
        self._io_lock = threading.Lock()

    def _session_file(self, session_id: str) -> Path:
        # Percent-encoding keeps distinct ids in distinct files
        return self.storage_dir / f"{quote(session_id, safe='')}.json"

    def _load(self, session_id: str) -> Optional[StoredSession]:
        session_file = self._session_file(session_id)
        if not session_file.exists():
            return None
        with open(session_file, "r", encoding="utf-8") as f:
            return StoredSession.model_validate(json.load(f))

    def _save(self, stored: StoredSession) -> None:
        session_file = self._session_file(stored.session_id)
        temp_file = session_file.with_name(session_file.name + ".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(stored.model_dump(mode="json"), f, indent=2)
        temp_file.replace(session_file)

    def _update(
        self,
        session_id: str,
        turns: Sequence[Turn],
        summary: Optional[str] = None,
        title: Optional[str] = None,
    ) -> None:
        with self._io_lock:
            stored = self._load(session_id) or StoredSession(session_id=session_id)
            if summary is not None:
                stored.summary = summary
            if title is not None:
                stored.title = title
            stored.history.extend(turns)
            self._save(stored)

    async def read(self, session_id: str) -> Optional[StoredSession]:
        stored = await asyncio.to_thread(self._load, session_id)
        if stored is None:
            self.logger.debug("stored_session_not_found", session_id=session_id)
        return stored

    async def write(
        self, session_id: str, *, summary: Optional[str] = None, title: Optional[str] = None
    ) -> None:
        await asyncio.to_thread(self._update, session_id, (), summary, title)
        self.logger.info(
            "stored_session_updated",
            session_id=session_id,
            summary=summary is not None,
            title=title is not None,
        )

    async def append_turns(self, session_id: str, turns: Sequence[Turn]) -> None:
        if not turns:
            return
        await asyncio.to_thread(self._update, session_id, list(turns))
        self.logger.debug("stored_session_turns_appended", session_id=session_id, count=len(turns))

    def delete(self, session_id: str) -> bool:
        """Remove a stored session. Returns True if a file was deleted."""
        session_file = self._session_file(session_id)
        with self._io_lock:
            if not session_file.exists():
                return False
            session_file.unlink()
        self.logger.info("stored_session_deleted", session_id=session_id)
        return True


def hydrate_session(stored: Optional[StoredSession], session_id: str, limit: int) -> Session:
    """
    Build a working Session from durable state.

    Keeps the last ``limit`` stored turns, dropping system turns and any
    non-text parts; the fragment cache always starts empty. A missing stored
    session yields an empty Session.
    """
    if stored is None:
        return Session(session_id=session_id)

    history: list[Turn] = []
    for turn in stored.history[-limit:]:
        if turn.role == Role.SYSTEM:
            continue
        texts = [p for p in turn.parts if isinstance(p, TextPart) and p.text.strip()]
        if not texts:
            continue
        history.append(Turn(role=turn.role, parts=texts, created_at=turn.created_at))

    return Session(
        session_id=session_id, history=history, summary=stored.summary, title=stored.title
    )
