"""Pipelines package for WebIndex.

Provides text normalization, HTML extraction, freshness checks and
TF-IDF scoring. The store-backed stages live in ``pipelines.index_writer``
and ``pipelines.document_indexer``.
"""

from .errors import (
    IndexingError,
    TransportError,
    ParseError,
    PreconditionError,
    StoreReadError,
    StoreWriteError
)
from .text import clean_text, tokenize
from .extractor import extract_content
from .transport import HttpTransport, ProbeResponse, ProbeStatus
from .freshness import check_page_update, FreshnessResult
from .scoring import calc_idf, term_frequency, compute_scores
from .models import (
    DocumentInfo,
    ExtractedContent,
    TermScore,
    IndexAction,
    IndexPlan,
    IndexResult,
    IndexStatus
)

__all__ = [
    # Errors
    'IndexingError',
    'TransportError',
    'ParseError',
    'PreconditionError',
    'StoreReadError',
    'StoreWriteError',

    # Text and extraction
    'clean_text',
    'tokenize',
    'extract_content',

    # Transport and freshness
    'HttpTransport',
    'ProbeResponse',
    'ProbeStatus',
    'check_page_update',
    'FreshnessResult',

    # Scoring
    'calc_idf',
    'term_frequency',
    'compute_scores',

    # Models
    'DocumentInfo',
    'ExtractedContent',
    'TermScore',
    'IndexAction',
    'IndexPlan',
    'IndexResult',
    'IndexStatus'
]
