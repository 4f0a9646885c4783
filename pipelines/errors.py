"""Error types for the indexing pipeline.

Every failure that stops a single document from being indexed is an
``IndexingError``. The pipeline reports them per document and moves on
to the next URL.
"""

from typing import Optional


class IndexingError(Exception):
    """Base class for per-document indexing failures."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url

    def __str__(self) -> str:
        message = super().__str__()
        if self.url:
            return f"{message} (url={self.url})"
        return message


class TransportError(IndexingError):
    """Fetch or probe failed, or returned an unexpected status."""

    def __init__(self, message: str, url: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, url)
        self.status_code = status_code


class ParseError(IndexingError):
    """Content was missing or could not be parsed."""


class PreconditionError(IndexingError):
    """Input violated a precondition of a computation."""


class StoreReadError(IndexingError):
    """A store lookup failed for a reason other than not-found."""

    def __init__(self, message: str, purpose: str, url: Optional[str] = None):
        super().__init__(message, url)
        self.purpose = purpose

    def __str__(self) -> str:
        return f"{super().__str__()} [purpose={self.purpose}]"


class StoreWriteError(IndexingError):
    """An insert, update, delete or batch failed."""

    def __init__(self, message: str, table: str, key: Optional[str] = None,
                 url: Optional[str] = None):
        super().__init__(message, url)
        self.table = table
        self.key = key

    def __str__(self) -> str:
        context = f"table={self.table}"
        if self.key:
            context += f", key={self.key}"
        return f"{super().__str__()} [{context}]"
