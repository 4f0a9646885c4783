import pytest
from unittest.mock import Mock

from indexer import queries
from indexer.store import BatchMode
from pipelines.document_indexer import DocumentIndexer
from pipelines.errors import ParseError, PreconditionError, StoreWriteError, TransportError
from pipelines.models import IndexAction, IndexStatus
from pipelines.transport import ProbeResponse, ProbeStatus

from conftest import html_page

URL_A = "https://example.com/a"
URL_B = "https://example.com/b"
FIRST_MARKER = "Mon, 01 Jan 2024 00:00:00 GMT"
SECOND_MARKER = "Tue, 02 Jan 2024 00:00:00 GMT"


@pytest.fixture
def indexer(store, transport):
    return DocumentIndexer(store, transport)


class TestClassify:
    """Tagged outcome computed before any write"""

    def test_unknown_url_is_new(self, indexer, transport):
        transport.add_page(URL_A, html_page("A", "alpha"))
        plan = indexer.classify(URL_A)
        assert plan.action == IndexAction.NEW
        assert plan.last_modified == FIRST_MARKER
        assert plan.previous_terms == set()

    def test_unchanged_existing(self, indexer, transport):
        transport.add_page(URL_A, html_page("A", "alpha"))
        indexer.index_document(URL_A)

        plan = indexer.classify(URL_A)
        assert plan.action == IndexAction.UNCHANGED_EXISTING
        assert transport.probe_calls[-1] == (URL_A, FIRST_MARKER)

    def test_changed_existing_loads_previous_terms(self, indexer, transport):
        transport.add_page(URL_A, html_page("A", "alpha beta"))
        first = indexer.index_document(URL_A)
        transport.add_page(URL_A, html_page("A", "gamma"), last_modified=SECOND_MARKER)

        plan = indexer.classify(URL_A)
        assert plan.action == IndexAction.CHANGED_EXISTING
        assert plan.doc_id == first.doc_id
        assert plan.last_modified == SECOND_MARKER
        assert plan.previous_terms == {"alpha", "beta"}

    def test_changed_without_marker_keeps_stored_marker(self, indexer, transport):
        transport.add_page(URL_A, html_page("A", "alpha"))
        indexer.index_document(URL_A)
        transport.probe_overrides[URL_A] = ProbeResponse(ProbeStatus.CHANGED, "", 200)

        plan = indexer.classify(URL_A)
        assert plan.action == IndexAction.CHANGED_EXISTING
        assert plan.last_modified == FIRST_MARKER


class TestIndexDocument:
    """End-to-end pipeline against in-memory SQLite"""

    def test_first_index(self, indexer, store, transport):
        transport.add_page(URL_A, html_page("Page, A!", "alpha beta alpha"))

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.INDEXED
        assert result.action == IndexAction.NEW
        stored = queries.get_document(store, URL_A)
        assert stored["doc_id"] == result.doc_id
        assert stored["title"] == "Page A"
        assert stored["last_updated"] == FIRST_MARKER
        assert stored["total_tokens"] == 3
        assert queries.get_term_frequencies(store, result.doc_id) == {"alpha": 2, "beta": 1}

    def test_unchanged_document_makes_no_writes(self, store, transport):
        spy = Mock(wraps=store)
        indexer = DocumentIndexer(spy, transport)
        transport.add_page(URL_A, html_page("A", "alpha beta"))
        indexer.index_document(URL_A)
        spy.reset_mock()

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.UNCHANGED
        assert spy.execute.call_count == 0
        assert spy.execute_batch.call_count == 0
        assert transport.fetch_calls == [URL_A]

    def test_identity_is_stable_across_reindex(self, indexer, transport):
        transport.add_page(URL_A, html_page("A", "alpha"))
        first = indexer.index_document(URL_A)
        transport.add_page(URL_A, html_page("A", "beta"), last_modified=SECOND_MARKER)

        second = indexer.index_document(URL_A)

        assert second.action == IndexAction.CHANGED_EXISTING
        assert second.doc_id == first.doc_id

    def test_dropped_term_leaves_no_rows(self, indexer, store, transport):
        transport.add_page(URL_A, html_page("A", "alpha beta gamma"))
        first = indexer.index_document(URL_A)
        transport.add_page(URL_A, html_page("", "alpha beta"), last_modified=SECOND_MARKER)

        indexer.index_document(URL_A)

        assert set(queries.get_term_frequencies(store, first.doc_id)) == {"alpha", "beta"}
        assert set(queries.get_tfidf_scores(store, first.doc_id)) == {"alpha", "beta"}
        assert queries.get_document_frequency(store, "gamma") == 0
        stored = queries.get_document(store, URL_A)
        assert stored["title"] == ""
        assert stored["last_updated"] == SECOND_MARKER

    def test_reindex_does_not_double_count_document_frequency(self, indexer, store, transport):
        transport.add_page(URL_A, html_page("A", "alpha shared"))
        transport.add_page(URL_B, html_page("B", "beta shared"))
        indexer.index_urls([URL_A, URL_B])
        transport.add_page(URL_A, html_page("A", "alpha shared"), last_modified=SECOND_MARKER)

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.INDEXED
        assert queries.get_document_frequency(store, "shared") == 2
        assert queries.get_document_frequency(store, "alpha") == 1

    def test_every_term_has_document_frequency(self, indexer, store, transport):
        transport.add_page(URL_A, html_page("A", "one two three"))
        transport.add_page(URL_B, html_page("B", "three four"))
        results = indexer.index_urls([URL_A, URL_B])

        for result in results:
            terms = queries.get_term_frequencies(store, result.doc_id)
            assert set(queries.get_tfidf_scores(store, result.doc_id)) == set(terms)
            for term in terms:
                assert queries.get_document_frequency(store, term) >= 1

    def test_probe_failure_on_known_document_skips(self, store, transport):
        spy = Mock(wraps=store)
        indexer = DocumentIndexer(spy, transport)
        transport.add_page(URL_A, html_page("A", "alpha"))
        indexer.index_document(URL_A)
        spy.reset_mock()
        transport.probe_overrides[URL_A] = ProbeResponse(
            ProbeStatus.ERROR, http_status=500, reason="500 Internal Server Error"
        )

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.SKIPPED
        assert isinstance(result.error, TransportError)
        assert spy.execute.call_count == 0
        assert spy.execute_batch.call_count == 0

    def test_probe_failure_on_new_document_fetches_anyway(self, indexer, store, transport):
        transport.add_page(URL_A, html_page("A", "alpha"))
        transport.probe_overrides[URL_A] = ProbeResponse(ProbeStatus.ERROR, reason="refused")

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.INDEXED
        assert queries.get_document(store, URL_A)["last_updated"] == ""

    def test_fetch_failure(self, indexer, store):
        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.FAILED
        assert isinstance(result.error, TransportError)
        assert queries.get_document(store, URL_A) is None

    def test_empty_content_is_parse_failure(self, indexer, store, transport):
        transport.add_page(URL_A, b"")

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.FAILED
        assert isinstance(result.error, ParseError)
        assert queries.get_document_count(store) == 0

    def test_document_without_tokens_is_discarded(self, indexer, store, transport):
        transport.add_page(URL_A, "<html><head><title>Only a title</title></head></html>")

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.FAILED
        assert isinstance(result.error, PreconditionError)
        assert result.error.url == URL_A
        assert queries.get_document_count(store) == 0

    def test_store_write_failure_is_reported_with_context(self, store, transport):
        spy = Mock(wraps=store)
        spy.execute_batch.side_effect = StoreWriteError(
            "disk full", table="term_frequency", key="term=alpha"
        )
        indexer = DocumentIndexer(spy, transport)
        transport.add_page(URL_A, html_page("A", "alpha"))

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.FAILED
        assert result.error.table == "term_frequency"
        assert result.error.url == URL_A


class TestRecovery:
    """A document left half written is rewritten in full on the next run"""

    @staticmethod
    def failing_store(store, table):
        spy = Mock(wraps=store)

        def execute_batch(statements, mode=BatchMode.LOGGED):
            if statements[0].table == table:
                raise StoreWriteError("disk full", table=table)
            return store.execute_batch(statements, mode)

        spy.execute_batch.side_effect = execute_batch
        return spy

    def assert_consistent(self, store, doc_id, terms):
        assert set(queries.get_term_frequencies(store, doc_id)) == terms
        assert set(queries.get_tfidf_scores(store, doc_id)) == terms
        for term in terms:
            assert queries.get_document_frequency(store, term) == 1

    def test_failed_new_document_is_reindexed(self, store, transport):
        transport.add_page(URL_A, html_page("A", "alpha beta"))
        failed = DocumentIndexer(self.failing_store(store, "document_frequency"), transport)
        first = failed.index_document(URL_A)
        assert first.status == IndexStatus.FAILED
        assert queries.get_document(store, URL_A)["last_updated"] == ""

        indexer = DocumentIndexer(store, transport)
        second = indexer.index_document(URL_A)

        assert second.status == IndexStatus.INDEXED
        assert second.action == IndexAction.CHANGED_EXISTING
        self.assert_consistent(store, second.doc_id, {"alpha", "beta"})
        assert queries.get_document(store, URL_A)["last_updated"] == FIRST_MARKER

        assert indexer.index_document(URL_A).status == IndexStatus.UNCHANGED

    def test_failed_update_heals_dropped_and_added_terms(self, store, transport):
        transport.add_page(URL_A, html_page("A", "alpha beta gamma"))
        indexer = DocumentIndexer(store, transport)
        doc_id = indexer.index_document(URL_A).doc_id
        transport.add_page(URL_A, html_page("A", "alpha beta delta"), last_modified=SECOND_MARKER)

        failed = DocumentIndexer(self.failing_store(store, "document_frequency"), transport)
        assert failed.index_document(URL_A).status == IndexStatus.FAILED

        result = indexer.index_document(URL_A)

        assert result.status == IndexStatus.INDEXED
        self.assert_consistent(store, doc_id, {"alpha", "beta", "delta"})
        assert queries.get_document_frequency(store, "gamma") == 0
        assert queries.get_document(store, URL_A)["last_updated"] == SECOND_MARKER

    def test_failed_scores_are_rewritten(self, store, transport):
        transport.add_page(URL_A, html_page("A", "alpha beta"))
        failed = DocumentIndexer(self.failing_store(store, "tfidf_scores"), transport)
        assert failed.index_document(URL_A).status == IndexStatus.FAILED

        result = DocumentIndexer(store, transport).index_document(URL_A)

        assert result.status == IndexStatus.INDEXED
        self.assert_consistent(store, result.doc_id, {"alpha", "beta"})


class TestIndexUrls:
    """Sequential runs over several URLs"""

    def test_failures_do_not_stop_other_documents(self, indexer, store, transport):
        transport.add_page(URL_B, html_page("B", "beta"))

        results = indexer.index_urls([URL_A, URL_B])

        assert [r.status for r in results] == [IndexStatus.FAILED, IndexStatus.INDEXED]
        assert queries.get_document_count(store) == 1

    def test_stop_on_error(self, indexer, transport):
        transport.add_page(URL_B, html_page("B", "beta"))

        results = indexer.index_urls([URL_A, URL_B], stop_on_error=True)

        assert len(results) == 1
        assert results[0].status == IndexStatus.FAILED
        assert transport.fetch_calls == [URL_A]

    def test_second_run_is_unchanged(self, indexer, transport):
        transport.add_page(URL_A, html_page("A", "alpha"))
        transport.add_page(URL_B, html_page("B", "beta"))
        indexer.index_urls([URL_A, URL_B])

        results = indexer.index_urls([URL_A, URL_B])

        assert all(r.status == IndexStatus.UNCHANGED for r in results)
        assert all(r.success for r in results)
