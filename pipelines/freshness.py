"""Freshness check deciding whether a document needs re-indexing."""

import logging
from dataclasses import dataclass

from .errors import TransportError
from .transport import ProbeStatus

logger = logging.getLogger(__name__)


@dataclass
class FreshnessResult:
    needs_update: bool
    last_modified: str


def check_page_update(transport, url: str, last_modified: str = "") -> FreshnessResult:
    """Probe ``url`` and compare against the stored last-modified marker.

    Args:
        transport: Object with a ``probe(url, marker)`` method
        url: Document URL
        last_modified: Stored marker, empty for a document never indexed

    Returns:
        FreshnessResult. When the source changed, ``last_modified`` is the
        marker the response reported (possibly empty). When it did not,
        the previous marker is returned unchanged.

    Raises:
        TransportError: For any other probe outcome
    """
    response = transport.probe(url, last_modified)

    if response.status == ProbeStatus.CHANGED:
        logger.debug(f"Document changed upstream: {url}")
        return FreshnessResult(needs_update=True, last_modified=response.new_marker)

    if response.status == ProbeStatus.NOT_MODIFIED:
        logger.debug(f"Document not modified upstream: {url}")
        return FreshnessResult(needs_update=False, last_modified=last_modified)

    detail = response.reason or "no response"
    if response.http_status is not None:
        message = f"unexpected HTTP status: {detail}"
    else:
        message = f"probe failed: {detail}"
    raise TransportError(message, url, status_code=response.http_status)
