"""Persistence of an indexed document across the four index tables.

Writes happen in a fixed order: document record, term frequencies,
document frequencies, pruning of dropped terms, TF-IDF scores computed
against the corpus counts as they stand after those steps, and finally
the freshness marker. The store offers per-statement atomicity only.

Every step can be repeated safely. A term's document frequency is
recounted from its ``term_frequency`` rows instead of being incremented,
and the marker stays empty until the last write succeeds, so a document
left half written by a failure is probed as changed and rewritten in
full on the next run.
"""

import json
import logging
from typing import Dict, Iterable, Optional

from indexer import queries
from indexer.batching import BatchWriter, MAX_BATCH_SIZE
from indexer.store import BatchMode, Statement
from observability.metrics import record_batch

from .models import DocumentInfo, TermScore
from .scoring import compute_scores

logger = logging.getLogger(__name__)

# Identity and content are written with an empty marker; MARK_INDEXED sets it.
INSERT_DOCUMENT = """
INSERT INTO documents
(doc_id, title, url, last_updated, content, links, total_tokens)
VALUES (:doc_id, :title, :url, '', :content, :links, :total_tokens)
"""

UPDATE_DOCUMENT = """
UPDATE documents
SET title = :title, url = :url, last_updated = '', content = :content,
    links = :links, total_tokens = :total_tokens
WHERE doc_id = :doc_id
"""

MARK_INDEXED = "UPDATE documents SET last_updated = :last_updated WHERE doc_id = :doc_id"

UPSERT_TERM_FREQUENCY = """
INSERT INTO term_frequency (term, doc_id, frequency)
VALUES (:term, :doc_id, :frequency)
ON CONFLICT (term, doc_id) DO UPDATE SET frequency = excluded.frequency
"""

DELETE_TERM_FREQUENCY = "DELETE FROM term_frequency WHERE term = :term AND doc_id = :doc_id"

# doc_count is the number of documents holding a term_frequency row for the
# term, not counting :exclude_doc_id (empty string excludes nothing).
RECOUNT_DOCUMENT_FREQUENCY = """
INSERT INTO document_frequency (term, doc_count)
SELECT :term, COUNT(*) FROM term_frequency
WHERE term = :term AND doc_id <> :exclude_doc_id
ON CONFLICT (term) DO UPDATE SET doc_count = excluded.doc_count
"""

DELETE_TFIDF_SCORES = "DELETE FROM tfidf_scores WHERE doc_id = :doc_id"

UPSERT_TFIDF_SCORE = """
INSERT INTO tfidf_scores (term, doc_id, tfidf_score)
VALUES (:term, :doc_id, :tfidf_score)
ON CONFLICT (term, doc_id) DO UPDATE SET tfidf_score = excluded.tfidf_score
"""


class IndexWriter:
    """Writes one document's records so that the index tables agree."""

    def __init__(self, store,
                 batch_size: int = MAX_BATCH_SIZE,
                 batch_mode: BatchMode = BatchMode.LOGGED):
        self.store = store
        self.batch_size = batch_size
        self.batch_mode = batch_mode

    def _batch(self) -> BatchWriter:
        return BatchWriter(self.store, self.batch_size, self.batch_mode, on_flush=record_batch)

    def upsert_document(self, document: DocumentInfo, is_new: bool) -> None:
        """Insert a new document row or overwrite every field of an existing one.

        The freshness marker is cleared here and only set by ``mark_indexed``.
        """
        params = {
            "doc_id": str(document.doc_id),
            "title": document.title,
            "url": document.url,
            "content": document.content,
            "links": json.dumps(document.links),
            "total_tokens": document.total_tokens,
        }
        statement = Statement(
            sql=INSERT_DOCUMENT if is_new else UPDATE_DOCUMENT,
            params=params,
            table="documents",
            key=f"doc_id={document.doc_id}, url={document.url}",
        )
        self.store.execute(statement)

    def replace_term_frequencies(self, document: DocumentInfo) -> int:
        """Write a row for every current term, overwriting stored counts.

        Rows for terms the document no longer contains are removed later by
        ``prune_term_frequencies``, once their document frequency is settled.
        """
        doc_id = str(document.doc_id)
        with self._batch() as batch:
            for term, count in document.word_count.items():
                batch.add(Statement(
                    sql=UPSERT_TERM_FREQUENCY,
                    params={"term": term, "doc_id": doc_id, "frequency": count},
                    table="term_frequency",
                    key=f"term={term}, doc_id={doc_id}",
                ))
        return batch.statements_written

    def update_document_frequencies(self, document: DocumentInfo,
                                    removed_terms: Iterable[str] = ()) -> int:
        """Recount the document frequency of every term this document touches.

        Current terms are counted from ``term_frequency`` as it stands, so a
        document is attributed to a term exactly once however many times it
        is written. Removed terms are counted without this document.
        """
        doc_id = str(document.doc_id)
        with self._batch() as batch:
            for term in sorted(document.word_count):
                batch.add(self._recount(term, doc_id, exclude=""))
            for term in sorted(removed_terms):
                batch.add(self._recount(term, doc_id, exclude=doc_id))
        return batch.statements_written

    @staticmethod
    def _recount(term: str, doc_id: str, exclude: str) -> Statement:
        return Statement(
            sql=RECOUNT_DOCUMENT_FREQUENCY,
            params={"term": term, "exclude_doc_id": exclude},
            table="document_frequency",
            key=f"term={term}, doc_id={doc_id}",
        )

    def prune_term_frequencies(self, document: DocumentInfo,
                               removed_terms: Iterable[str]) -> int:
        """Delete the rows of terms the document no longer contains."""
        doc_id = str(document.doc_id)
        with self._batch() as batch:
            for term in sorted(removed_terms):
                batch.add(Statement(
                    sql=DELETE_TERM_FREQUENCY,
                    params={"term": term, "doc_id": doc_id},
                    table="term_frequency",
                    key=f"term={term}, doc_id={doc_id}",
                ))
        return batch.statements_written

    def compute_scores(self, document: DocumentInfo) -> Dict[str, TermScore]:
        """Score the document against the current corpus counts.

        Counts are read without locking; concurrent writers may make them
        slightly stale.
        """
        total_docs = queries.get_document_count(self.store)
        return compute_scores(
            document.word_count,
            document.total_tokens,
            total_docs,
            lambda term: queries.get_document_frequency(self.store, term),
        )

    def replace_tfidf_scores(self, document: DocumentInfo,
                             scores: Dict[str, TermScore], is_new: bool) -> int:
        """Delete the document's score rows, then insert the fresh set."""
        doc_id = str(document.doc_id)
        if not is_new:
            self.store.execute(Statement(
                sql=DELETE_TFIDF_SCORES,
                params={"doc_id": doc_id},
                table="tfidf_scores",
                key=f"doc_id={doc_id}",
            ))

        with self._batch() as batch:
            for term, score in scores.items():
                batch.add(Statement(
                    sql=UPSERT_TFIDF_SCORE,
                    params={"term": term, "doc_id": doc_id, "tfidf_score": score.tfidf},
                    table="tfidf_scores",
                    key=f"term={term}, doc_id={doc_id}",
                ))
        return batch.statements_written

    def mark_indexed(self, document: DocumentInfo) -> None:
        """Store the freshness marker, making the document eligible for skipping."""
        self.store.execute(Statement(
            sql=MARK_INDEXED,
            params={"doc_id": str(document.doc_id), "last_updated": document.last_modified},
            table="documents",
            key=f"doc_id={document.doc_id}, url={document.url}",
        ))

    def write(self, document: DocumentInfo,
              previous_terms: Optional[Iterable[str]] = None,
              is_new: bool = True) -> Dict[str, int]:
        """Persist all records for one document.

        Args:
            document: Document with its extraction results
            previous_terms: Terms holding a ``term_frequency`` row for this
                document before the write, empty for a new document
            is_new: Whether the document identity was assigned in this run

        Returns:
            Number of rows written per table

        Raises:
            StoreWriteError: On the first failed write; later writes are skipped
            StoreReadError: If corpus counts cannot be read
        """
        removed = set(previous_terms or ()) - set(document.word_count)
        written = {}

        self.upsert_document(document, is_new)
        written["documents"] = 1

        written["term_frequency"] = self.replace_term_frequencies(document)
        written["document_frequency"] = self.update_document_frequencies(document, removed)
        self.prune_term_frequencies(document, removed)

        scores = self.compute_scores(document)
        written["tfidf_scores"] = self.replace_tfidf_scores(document, scores, is_new)

        self.mark_indexed(document)

        logger.info(
            f"Wrote {document.url}: {written['term_frequency']} terms, "
            f"{len(removed)} dropped, {written['tfidf_scores']} scores"
        )
        return written
