"""Sequential document indexing pipeline.

For each URL: classify it against the store (new, unchanged, changed),
fetch and extract when needed, then hand the result to the index writer.
Failures are reported per document and never stop the other URLs unless
the caller asks for it.
"""

import time
import uuid
import logging
from typing import Iterable, List, Optional

from indexer import queries
from indexer.batching import MAX_BATCH_SIZE
from indexer.store import BatchMode
from observability.logging import error_fields, get_structured_logger
from observability.metrics import record_document

from .errors import IndexingError, PreconditionError, TransportError
from .extractor import extract_content
from .freshness import check_page_update
from .index_writer import IndexWriter
from .models import (
    DocumentInfo, IndexAction, IndexPlan, IndexResult, IndexStatus, StoredDocument,
)

logger = logging.getLogger(__name__)


class DocumentIndexer:
    """Indexes documents one at a time into the store."""

    def __init__(self, store, transport,
                 batch_size: int = MAX_BATCH_SIZE,
                 batch_mode: BatchMode = BatchMode.LOGGED):
        """Initialize the pipeline.

        Args:
            store: Store adapter (see ``indexer.store.SQLStore``)
            transport: Object with ``fetch(url)`` and ``probe(url, marker)``
            batch_size: Maximum statements per batch
            batch_mode: Consistency mode for batches
        """
        self.store = store
        self.transport = transport
        self.writer = IndexWriter(store, batch_size=batch_size, batch_mode=batch_mode)
        self.log = get_structured_logger(__name__, component="document_indexer")

    @classmethod
    def from_settings(cls, settings, store, transport) -> 'DocumentIndexer':
        return cls(
            store,
            transport,
            batch_size=settings.indexing.batch_size,
            batch_mode=settings.indexing.batch_mode,
        )

    def lookup_document(self, url: str) -> Optional[StoredDocument]:
        stored = queries.get_document_identity(self.store, url)
        if stored is None:
            return None
        return StoredDocument(doc_id=stored["doc_id"], last_modified=stored["last_updated"])

    def classify(self, url: str) -> IndexPlan:
        """Decide what to do with ``url`` before touching any table.

        A probe failure on a never-seen URL still leads to a full fetch,
        since there is nothing to compare against. On a known URL it
        leaves the stored version in place.
        """
        stored = self.lookup_document(url)

        if stored is None:
            plan = IndexPlan(url=url, action=IndexAction.NEW, doc_id=uuid.uuid4())
            try:
                plan.last_modified = check_page_update(self.transport, url, "").last_modified
            except TransportError as e:
                plan.probe_error = e
                self.log.info("Freshness probe failed for new document, fetching anyway",
                              url=url, error=str(e))
            return plan

        try:
            freshness = check_page_update(self.transport, url, stored.last_modified)
        except TransportError as e:
            return IndexPlan(
                url=url,
                action=IndexAction.UNCHANGED_EXISTING,
                doc_id=stored.doc_id,
                last_modified=stored.last_modified,
                probe_error=e,
            )

        if not freshness.needs_update:
            return IndexPlan(
                url=url,
                action=IndexAction.UNCHANGED_EXISTING,
                doc_id=stored.doc_id,
                last_modified=stored.last_modified,
            )

        return IndexPlan(
            url=url,
            action=IndexAction.CHANGED_EXISTING,
            doc_id=stored.doc_id,
            # Keep the stored marker when the source reports none
            last_modified=freshness.last_modified or stored.last_modified,
            previous_terms=queries.get_document_terms(self.store, stored.doc_id),
        )

    def _index(self, url: str) -> IndexResult:
        plan = self.classify(url)
        log = self.log.bind(url=url, doc_id=str(plan.doc_id), action=plan.action.value)
        log.debug("Classified document")

        if plan.action == IndexAction.UNCHANGED_EXISTING:
            if plan.probe_error is not None:
                log.warning("Freshness probe failed, keeping stored version",
                            error=str(plan.probe_error))
                return IndexResult(url=url, status=IndexStatus.SKIPPED, action=plan.action,
                                   doc_id=plan.doc_id, error=plan.probe_error)
            logger.info(f"Document unchanged, skipping: {url}")
            return IndexResult(url=url, status=IndexStatus.UNCHANGED, action=plan.action,
                               doc_id=plan.doc_id)

        content = self.transport.fetch(url)
        extracted = extract_content(content, url)
        if extracted.total_tokens <= 0:
            raise PreconditionError("Document has no tokens, nothing to score", url)

        document = DocumentInfo.from_extraction(
            plan.doc_id, url, content, extracted, last_modified=plan.last_modified
        )
        written = self.writer.write(
            document,
            previous_terms=plan.previous_terms,
            is_new=plan.action == IndexAction.NEW,
        )
        log.info("Document indexed", **written)
        return IndexResult(url=url, status=IndexStatus.INDEXED, action=plan.action,
                           doc_id=plan.doc_id)

    def index_document(self, url: str) -> IndexResult:
        """Run the full pipeline for one URL and report the outcome."""
        start_time = time.time()
        try:
            result = self._index(url)
        except IndexingError as e:
            if e.url is None:
                e.url = url
            self.log.error(f"Failed to index document: {e}", **error_fields(e))
            result = IndexResult(url=url, status=IndexStatus.FAILED, error=e)

        result.duration = time.time() - start_time
        record_document(result.status.value, result.duration)
        return result

    def index_urls(self, urls: Iterable[str], stop_on_error: bool = False) -> List[IndexResult]:
        """Index URLs sequentially.

        Args:
            urls: URLs to index, in order
            stop_on_error: Stop after the first failed document

        Returns:
            One IndexResult per processed URL
        """
        results = []
        for url in urls:
            result = self.index_document(url)
            results.append(result)
            if stop_on_error and result.status == IndexStatus.FAILED:
                logger.warning(f"Stopping after failure on {url}")
                break

        counts = {status: 0 for status in IndexStatus}
        for result in results:
            counts[result.status] += 1
        logger.info(
            f"Indexing run complete: {counts[IndexStatus.INDEXED]} indexed, "
            f"{counts[IndexStatus.UNCHANGED]} unchanged, {counts[IndexStatus.SKIPPED]} skipped, "
            f"{counts[IndexStatus.FAILED]} failed out of {len(results)} URLs"
        )
        return results
