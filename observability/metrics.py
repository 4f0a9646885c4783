"""Prometheus metrics for the indexing pipeline."""

import logging

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Dedicated registry so repeated imports in tests never collide with the default one
webindex_registry = CollectorRegistry()

documents_processed = Counter(
    'webindex_documents_total',
    'Documents processed, by outcome',
    ['status'],
    registry=webindex_registry
)

indexing_duration = Histogram(
    'webindex_document_duration_seconds',
    'Time spent on one document, freshness check through last write',
    ['status'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=webindex_registry
)

batches_flushed = Counter(
    'webindex_batches_total',
    'Statement batches sent to the store',
    ['table'],
    registry=webindex_registry
)

statements_written = Counter(
    'webindex_statements_total',
    'Statements written to the store',
    ['table'],
    registry=webindex_registry
)


def record_document(status: str, duration: float) -> None:
    """Record the outcome of indexing one document."""
    try:
        documents_processed.labels(status=status).inc()
        indexing_duration.labels(status=status).observe(duration)
    except Exception as e:
        logger.error(f"Failed to record document metrics: {e}")


def record_batch(table: str, size: int) -> None:
    """Record one flushed batch of ``size`` statements."""
    try:
        table = table or "unknown"
        batches_flushed.labels(table=table).inc()
        statements_written.labels(table=table).inc(size)
    except Exception as e:
        logger.error(f"Failed to record batch metrics: {e}")


def get_metrics_text() -> str:
    """Render all metrics in the Prometheus exposition format."""
    return generate_latest(webindex_registry).decode("utf-8")
