"""Core pipeline components"""

from .cache import LRUCache, SessionCache
from .config import TutorConfig, get_config, reset_config
from .locks import SessionLockRegistry
from .persistence import JsonSessionStore, hydrate_session
from .pipeline import TutorPipeline

__all__ = [
    "LRUCache",
    "SessionCache",
    "TutorConfig",
    "get_config",
    "reset_config",
    "SessionLockRegistry",
    "JsonSessionStore",
    "hydrate_session",
    "TutorPipeline",
]
