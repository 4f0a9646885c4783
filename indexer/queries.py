"""Read helpers over the keyword index tables."""

import json
import uuid
from typing import Any, Dict, List, Optional, Set

from pipelines.text import tokenize

from .store import RowNotFound


def get_document(store, url: str) -> Optional[Dict[str, Any]]:
    """Get the stored document for ``url``, or None if it was never indexed."""
    try:
        row = store.query_one(
            "SELECT doc_id, title, url, last_updated, content, links, total_tokens "
            "FROM documents WHERE url = :url",
            {"url": url},
            purpose="document lookup by url",
        )
    except RowNotFound:
        return None

    return {
        "doc_id": uuid.UUID(row.doc_id),
        "title": row.title,
        "url": row.url,
        "last_updated": row.last_updated or "",
        "content": row.content,
        "links": json.loads(row.links) if row.links else [],
        "total_tokens": row.total_tokens,
    }


def get_document_identity(store, url: str) -> Optional[Dict[str, Any]]:
    """Get only ``doc_id`` and ``last_updated`` for ``url``."""
    try:
        row = store.query_one(
            "SELECT doc_id, last_updated FROM documents WHERE url = :url",
            {"url": url},
            purpose="document last-updated lookup",
        )
    except RowNotFound:
        return None
    return {"doc_id": uuid.UUID(row.doc_id), "last_updated": row.last_updated or ""}


def get_document_terms(store, doc_id: uuid.UUID) -> Set[str]:
    rows = store.query_all(
        "SELECT term FROM term_frequency WHERE doc_id = :doc_id",
        {"doc_id": str(doc_id)},
        purpose="previous term set of document",
    )
    return {row.term for row in rows}


def get_term_frequencies(store, doc_id: uuid.UUID) -> Dict[str, int]:
    rows = store.query_all(
        "SELECT term, frequency FROM term_frequency WHERE doc_id = :doc_id",
        {"doc_id": str(doc_id)},
        purpose="term frequencies of document",
    )
    return {row.term: row.frequency for row in rows}


def get_document_frequency(store, term: str) -> Optional[int]:
    """Document frequency of ``term``, or None if the corpus has never seen it."""
    try:
        row = store.query_one(
            "SELECT doc_count FROM document_frequency WHERE term = :term",
            {"term": term},
            purpose=f"document frequency of '{term}'",
        )
    except RowNotFound:
        return None
    return row.doc_count


def get_tfidf_scores(store, doc_id: uuid.UUID) -> Dict[str, float]:
    rows = store.query_all(
        "SELECT term, tfidf_score FROM tfidf_scores WHERE doc_id = :doc_id",
        {"doc_id": str(doc_id)},
        purpose="tf-idf scores of document",
    )
    return {row.term: row.tfidf_score for row in rows}


def get_document_count(store) -> int:
    count = store.scalar("SELECT COUNT(*) FROM documents", purpose="corpus document count")
    return int(count or 0)


def top_documents_for_term(store, term: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Documents with the highest stored TF-IDF score for one term.

    The term is normalized like indexed text, so punctuation and case do not
    matter. Text that normalizes to several terms matches nothing.
    """
    terms = tokenize(term)
    if len(terms) != 1:
        return []
    rows = store.query_all(
        "SELECT d.url, d.title, s.tfidf_score "
        "FROM tfidf_scores s JOIN documents d ON d.doc_id = s.doc_id "
        "WHERE s.term = :term "
        "ORDER BY s.tfidf_score DESC, d.url "
        "LIMIT :limit",
        {"term": terms[0], "limit": limit},
        purpose=f"top documents for '{term}'",
    )
    return [{"url": row.url, "title": row.title, "score": row.tfidf_score} for row in rows]


def corpus_stats(store) -> Dict[str, int]:
    return {
        "documents": get_document_count(store),
        "terms": int(store.scalar(
            "SELECT COUNT(*) FROM document_frequency WHERE doc_count > 0",
            purpose="distinct term count",
        ) or 0),
        "scores": int(store.scalar(
            "SELECT COUNT(*) FROM tfidf_scores",
            purpose="tf-idf row count",
        ) or 0),
    }
