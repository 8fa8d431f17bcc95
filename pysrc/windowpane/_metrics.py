"""Prometheus counters for windows and scheduled tasks."""

from prometheus_client import REGISTRY, Counter
from prometheus_client.exposition import generate_latest

EMISSIONS = Counter(
    "windowpane_emissions",
    "Number of aggregates passed to a window's emit function",
    ["window"],
)

TASK_ERRORS = Counter(
    "windowpane_task_errors",
    "Number of scheduled task firings that raised an exception",
    ["task"],
)


def generate_python_metrics() -> str:
    """Generate Prometheus compatible metrics from the Python registry."""
    return generate_latest(REGISTRY).decode("utf-8")
