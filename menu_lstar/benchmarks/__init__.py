"""
Metrics for comparing learning sessions across configurations.
"""

from .metrics import (
    BenchmarkResults,
    MetricsCollector,
    SessionMetrics,
    evaluate_hypothesis_on_corpus,
)

__all__ = [
    "BenchmarkResults",
    "MetricsCollector",
    "SessionMetrics",
    "evaluate_hypothesis_on_corpus",
]
