"""
In-process metrics for the tutoring pipeline.

Counts recoverable and fatal conditions by kind and keeps a rolling window
of recent turns for latency and outcome summaries.
"""

import statistics
import threading
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.enums import AnswerStatus
from ..utils.logging import get_logger


class TurnRecord(BaseModel):
    """Summary of one completed turn."""

    session_id: str
    status: AnswerStatus
    latency_ms: float
    iterations: int = 0
    tools_invoked: List[str] = Field(default_factory=list)
    fragments_retrieved: int = 0
    compacted: bool = False
    warnings: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MetricsCollector:
    """
    Collects and aggregates pipeline metrics.

    Tracks:
    - Degradations by kind (RetrievalDegraded, SummarizationDegraded, ...)
    - Turn outcomes by status
    - Latency and iteration counts over the recent window
    """

    def __init__(self, window_size: int = 100):
        """
        Initialize metrics collector.

        Args:
            window_size: Number of recent turns to keep in memory
        """
        self.window_size = window_size
        self.recent_turns: deque[TurnRecord] = deque(maxlen=window_size)
        self.degradations: Counter[str] = Counter()
        self.outcomes: Counter[str] = Counter()
        self.total_turns = 0
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    def record_degradation(self, kind: str, session_id: Optional[str] = None) -> None:
        with self._lock:
            self.degradations[kind] += 1
        self.logger.debug("degradation_recorded", kind=kind, session_id=session_id)

    def record_turn(self, record: TurnRecord) -> None:
        with self._lock:
            self.recent_turns.append(record)
            self.outcomes[record.status.value] += 1
            self.total_turns += 1

    def snapshot(self) -> Dict[str, Any]:
        """Current counters plus summary statistics over the recent window."""
        with self._lock:
            turns = list(self.recent_turns)
            snapshot: Dict[str, Any] = {
                "total_turns": self.total_turns,
                "outcomes": dict(self.outcomes),
                "degradations": dict(self.degradations),
            }

        if not turns:
            snapshot["recent"] = {"turn_count": 0}
            return snapshot

        latencies = [t.latency_ms for t in turns]
        snapshot["recent"] = {
            "turn_count": len(turns),
            "latency_ms": {
                "mean": statistics.mean(latencies),
                "p50": statistics.median(latencies),
                "max": max(latencies),
            },
            "mean_iterations": statistics.mean(t.iterations for t in turns),
            "compaction_rate": sum(1 for t in turns if t.compacted) / len(turns),
        }
        return snapshot

    def reset(self) -> None:
        with self._lock:
            self.recent_turns.clear()
            self.degradations.clear()
            self.outcomes.clear()
            self.total_turns = 0


_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get the process-wide metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
