"""HTTP transport used by the indexing pipeline.

Full-body fetches and metadata-only conditional probes, both through one
``requests.Session``. Redirects are never followed on a probe so that the
caller sees the real status.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "WebIndex/1.0"


class ProbeStatus(str, Enum):
    CHANGED = "changed"
    NOT_MODIFIED = "not-modified"
    ERROR = "error"


@dataclass
class ProbeResponse:
    """Outcome of a conditional HEAD request."""
    status: ProbeStatus
    new_marker: str = ""
    http_status: Optional[int] = None
    reason: str = ""


class HttpTransport:
    """Fetch and probe documents over HTTP."""

    def __init__(self,
                 user_agent: str = DEFAULT_USER_AGENT,
                 request_timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", user_agent)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.session.close()

    def fetch(self, url: str) -> bytes:
        """Download the full body of ``url``.

        Raises:
            TransportError: On connection failure or a non-2xx response
        """
        try:
            response = self.session.get(url, timeout=self.request_timeout)
        except requests.RequestException as e:
            raise TransportError(f"Could not retrieve document: {e}", url) from e

        if not response.ok:
            raise TransportError(
                f"Unexpected HTTP status while fetching: {response.status_code} {response.reason}",
                url,
                status_code=response.status_code,
            )

        logger.debug(f"Fetched {url}: {len(response.content)} bytes")
        return response.content

    def probe(self, url: str, conditional_marker: str = "") -> ProbeResponse:
        """Issue a HEAD request, conditional on ``conditional_marker`` when set."""
        headers = {}
        if conditional_marker:
            headers["If-Modified-Since"] = conditional_marker

        try:
            response = self.session.head(
                url,
                headers=headers,
                timeout=self.request_timeout,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.warning(f"HTTP conditional check failed for {url}: {e}")
            return ProbeResponse(status=ProbeStatus.ERROR, reason=str(e))

        # 304 Not Modified means no change
        if response.status_code == requests.codes.not_modified:
            return ProbeResponse(
                status=ProbeStatus.NOT_MODIFIED,
                new_marker=conditional_marker,
                http_status=response.status_code,
            )

        if response.status_code == requests.codes.ok:
            return ProbeResponse(
                status=ProbeStatus.CHANGED,
                new_marker=response.headers.get("Last-Modified", ""),
                http_status=response.status_code,
            )

        return ProbeResponse(
            status=ProbeStatus.ERROR,
            http_status=response.status_code,
            reason=f"{response.status_code} {response.reason}",
        )
