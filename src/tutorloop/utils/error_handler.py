"""Centralized error handling utilities for collaborator calls"""
import asyncio
import time
from contextlib import contextmanager
from typing import Awaitable, Iterator, TypeVar

from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class CollaboratorTimeout(TimeoutError):
    """An external collaborator did not answer within its deadline."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} timed out after {timeout:.1f}s")
        self.operation = operation
        self.timeout = timeout


async def call_with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    Await a collaborator call with a finite deadline.

    Raises:
        CollaboratorTimeout: If the call does not finish within ``timeout`` seconds

    Example:
        vector = await call_with_timeout(
            embedder.embed(query, 512), timeout=30.0, operation="embed"
        )
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("collaborator_timeout", operation=operation, timeout_s=timeout)
        raise CollaboratorTimeout(operation, timeout) from e


class ErrorHandler:
    """Timing helpers"""

    @staticmethod
    @contextmanager
    def log_duration(operation_name: str, log_level: str = "debug", **context) -> Iterator[None]:
        """
        Context manager to log operation duration.

        Example:
            with ErrorHandler.log_duration("compaction", session_id=sid):
                ...
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            getattr(logger, log_level)(
                f"{operation_name}_duration", duration_ms=round(duration_ms, 2), **context
            )
