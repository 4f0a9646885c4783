from observability.metrics import (
    get_metrics_text, record_batch, record_document, webindex_registry,
)


def sample(name, **labels):
    return webindex_registry.get_sample_value(name, labels) or 0.0


def test_record_document_counts_by_status():
    before = sample("webindex_documents_total", status="indexed")
    record_document("indexed", 0.2)
    assert sample("webindex_documents_total", status="indexed") == before + 1

    count_before = sample("webindex_document_duration_seconds_count", status="failed")
    record_document("failed", 0.01)
    assert sample("webindex_document_duration_seconds_count", status="failed") == count_before + 1


def test_record_batch_counts_statements():
    batches = sample("webindex_batches_total", table="tfidf_scores")
    statements = sample("webindex_statements_total", table="tfidf_scores")

    record_batch("tfidf_scores", 7)

    assert sample("webindex_batches_total", table="tfidf_scores") == batches + 1
    assert sample("webindex_statements_total", table="tfidf_scores") == statements + 7


def test_indexing_run_updates_metrics(store, transport):
    from pipelines.document_indexer import DocumentIndexer
    from conftest import html_page

    before = sample("webindex_statements_total", table="term_frequency")
    transport.add_page("https://example.com/m", html_page("M", "one two three"))

    DocumentIndexer(store, transport).index_document("https://example.com/m")

    assert sample("webindex_statements_total", table="term_frequency") == before + 3


def test_exposition_text():
    record_document("unchanged", 0.0)
    text = get_metrics_text()
    assert "webindex_documents_total" in text
    assert 'status="unchanged"' in text
