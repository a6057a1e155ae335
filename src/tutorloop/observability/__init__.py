"""Operational metrics for degraded and completed turns."""

from .metrics import MetricsCollector, TurnRecord, get_metrics

__all__ = ["MetricsCollector", "TurnRecord", "get_metrics"]
