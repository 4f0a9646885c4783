"""Observability package for WebIndex: logging and Prometheus metrics."""

from .logging import (
    setup_logging,
    get_structured_logger,
    StructuredLogger,
    JSONFormatter,
    ColoredFormatter,
    error_fields
)
from .metrics import (
    record_document,
    record_batch,
    get_metrics_text,
    webindex_registry
)

__all__ = [
    'setup_logging',
    'get_structured_logger',
    'StructuredLogger',
    'JSONFormatter',
    'ColoredFormatter',
    'error_fields',
    'record_document',
    'record_batch',
    'get_metrics_text',
    'webindex_registry'
]
