"""
Per-session mutual exclusion.

Turns for the same session id run one at a time; turns for different
sessions never contend. Locks are reference counted and dropped once no
turn holds or waits on them, so the registry stays as small as the set of
sessions with in-flight turns.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from ..utils.logging import get_logger


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class SessionLockRegistry:
    """
    Keyed asyncio locks.

    Example:
        locks = SessionLockRegistry()
        async with locks.hold("session-1"):
            ...
    """

    def __init__(self, enabled: bool = True):
        """
        Args:
            enabled: When False, ``hold`` does not serialize and concurrent
                turns for one session race with last-write-wins semantics.
        """
        self.enabled = enabled
        self._entries: Dict[str, _Entry] = {}
        self.logger = get_logger(__name__)

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        if not self.enabled:
            yield
            return

        entry = self._entries.get(session_id)
        if entry is None:
            entry = self._entries[session_id] = _Entry()
        entry.users += 1

        if entry.lock.locked():
            self.logger.debug("session_turn_queued", session_id=session_id, waiters=entry.users - 1)

        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(session_id, None)

    def in_flight(self) -> int:
        """Number of sessions with a turn running or queued."""
        return len(self._entries)
