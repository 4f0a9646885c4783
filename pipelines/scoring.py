"""Corpus statistics: term frequency, inverse document frequency, TF-IDF."""

import math
import logging
from typing import Callable, Dict, Optional

from .errors import PreconditionError
from .models import TermScore

logger = logging.getLogger(__name__)

DocFrequencyLookup = Callable[[str], Optional[int]]


def calc_idf(total_docs: float, doc_frequency: float) -> float:
    """Smoothed inverse document frequency, ``1 + log2(N / df)``."""
    return 1 + math.log2(total_docs / doc_frequency)


def term_frequency(count: int, total_tokens: int) -> float:
    if total_tokens <= 0:
        raise PreconditionError(
            f"total token count must be positive to compute term frequency, got {total_tokens}"
        )
    return count / total_tokens


def compute_scores(word_count: Dict[str, int],
                   total_tokens: int,
                   total_docs: int,
                   lookup_doc_frequency: DocFrequencyLookup) -> Dict[str, TermScore]:
    """Compute TF, IDF and TF-IDF for every term of one document.

    Args:
        word_count: term -> occurrences in the document
        total_tokens: Sum of all occurrences in the document
        total_docs: Number of documents in the corpus
        lookup_doc_frequency: Returns the document frequency of a term, or
            None when the corpus has never seen it (treated as 1)

    Returns:
        term -> TermScore

    Raises:
        PreconditionError: If ``total_tokens`` or ``total_docs`` is not positive
    """
    if total_tokens <= 0:
        raise PreconditionError(
            f"total token count must be positive to compute term frequency, got {total_tokens}"
        )
    if total_docs <= 0:
        raise PreconditionError(
            f"corpus document count must be positive to compute IDF, got {total_docs}"
        )

    scores = {}
    for term, count in word_count.items():
        doc_frequency = lookup_doc_frequency(term)
        if not doc_frequency:
            # Never seen corpus-wide: at least this document contains it
            doc_frequency = 1

        scores[term] = TermScore(
            term=term,
            term_frequency=term_frequency(count, total_tokens),
            inverse_document_frequency=calc_idf(float(total_docs), float(doc_frequency)),
        )

    logger.debug(f"Computed scores for {len(scores)} terms against {total_docs} documents")
    return scores
