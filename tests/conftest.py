import pytest

from indexer.store import SQLStore
from pipelines.errors import TransportError
from pipelines.transport import ProbeResponse, ProbeStatus


class FakeTransport:
    """In-memory stand-in for HttpTransport.

    Pages carry a Last-Modified marker; a probe with the same marker
    answers not-modified, anything else answers changed.
    """

    def __init__(self):
        self.pages = {}
        self.markers = {}
        self.probe_overrides = {}
        self.fetch_calls = []
        self.probe_calls = []
        self.closed = False

    def add_page(self, url, html, last_modified="Mon, 01 Jan 2024 00:00:00 GMT"):
        self.pages[url] = html.encode("utf-8") if isinstance(html, str) else html
        self.markers[url] = last_modified

    def probe(self, url, conditional_marker=""):
        self.probe_calls.append((url, conditional_marker))
        if url in self.probe_overrides:
            return self.probe_overrides[url]
        current = self.markers.get(url, "")
        if conditional_marker and conditional_marker == current:
            return ProbeResponse(status=ProbeStatus.NOT_MODIFIED,
                                 new_marker=conditional_marker, http_status=304)
        return ProbeResponse(status=ProbeStatus.CHANGED, new_marker=current, http_status=200)

    def fetch(self, url):
        self.fetch_calls.append(url)
        if url not in self.pages:
            raise TransportError("Unexpected HTTP status while fetching: 404 Not Found", url,
                                 status_code=404)
        return self.pages[url]

    def close(self):
        self.closed = True


def html_page(title, body):
    return f"<html><head><title>{title}</title></head><body><p>{body}</p></body></html>"


@pytest.fixture
def store():
    """Fresh in-memory SQLite store with the index schema."""
    store = SQLStore.from_url("sqlite://")
    store.create_schema()
    yield store
    store.close()


@pytest.fixture
def transport():
    return FakeTransport()
