"""
Infrastructure Package.

Provides in-browser instrumentation shared by the page auditor.
"""

from .performance_metrics import (
    PERFORMANCE_OBSERVER_SCRIPT,
    GET_METRICS_SCRIPT,
    inject_performance_observers,
    collect_performance_metrics,
    parse_performance_metrics,
    evaluate_performance,
)

__all__ = [
    "PERFORMANCE_OBSERVER_SCRIPT",
    "GET_METRICS_SCRIPT",
    "inject_performance_observers",
    "collect_performance_metrics",
    "parse_performance_metrics",
    "evaluate_performance",
]
