"""
Prometheus metrics for loading pipeline options documents.

The duration codec and the models are pure; only the document layer records
metrics.
"""

from prometheus_client import Counter, Histogram
import time


documents_loaded_total = Counter(
    "ci_plumber_documents_loaded_total",
    "Total number of pipeline options documents loaded",
    ["document_type", "source"],  # source = mapping|json|yaml, detected when not given
)

document_errors_total = Counter(
    "ci_plumber_document_errors_total",
    "Total number of pipeline options documents that failed to load",
    ["document_type", "source", "error_type"],
)

document_load_duration_seconds = Histogram(
    "ci_plumber_document_load_duration_seconds",
    "Time spent parsing and validating pipeline options documents",
    ["document_type", "source"],
)


class MetricsContext:
    """Context manager for timing operations and counting their outcome."""

    def __init__(self, histogram, success_counter, error_counter, labels=None):
        self.histogram = histogram
        self.success_counter = success_counter
        self.error_counter = error_counter
        self.labels = labels or []
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            duration = time.time() - self.start_time
            self.histogram.labels(*self.labels).observe(duration)

        if exc_type is not None:
            self.error_counter.labels(*self.labels, exc_type.__name__).inc()
        else:
            self.success_counter.labels(*self.labels).inc()

        return False  # Don't suppress exceptions


def track_document_load(document_type: str, source: str):
    """Context manager for tracking document load metrics."""
    return MetricsContext(
        document_load_duration_seconds,
        documents_loaded_total,
        document_errors_total,
        labels=[document_type, source],
    )
