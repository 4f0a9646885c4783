"""Data structures passed between the pipeline stages."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set


@dataclass
class ExtractedContent:
    """Result of parsing one HTML document."""
    title: str = ""
    links: List[str] = field(default_factory=list)
    word_count: Dict[str, int] = field(default_factory=dict)
    total_tokens: int = 0


@dataclass
class DocumentInfo:
    """A document ready to be written to the store."""
    doc_id: uuid.UUID
    url: str
    content: bytes
    title: str = ""
    links: List[str] = field(default_factory=list)
    word_count: Dict[str, int] = field(default_factory=dict)
    total_tokens: int = 0
    last_modified: str = ""

    @classmethod
    def from_extraction(cls, doc_id: uuid.UUID, url: str, content: bytes,
                        extracted: ExtractedContent,
                        last_modified: str = "") -> 'DocumentInfo':
        return cls(
            doc_id=doc_id,
            url=url,
            content=content,
            title=extracted.title,
            links=list(extracted.links),
            word_count=dict(extracted.word_count),
            total_tokens=extracted.total_tokens,
            last_modified=last_modified,
        )


@dataclass
class TermScore:
    """Statistics computed for one term of one document."""
    term: str
    term_frequency: float
    inverse_document_frequency: float

    @property
    def tfidf(self) -> float:
        return self.term_frequency * self.inverse_document_frequency


class IndexAction(str, Enum):
    """How a URL relates to what the store already holds."""
    NEW = "new"
    UNCHANGED_EXISTING = "unchanged_existing"
    CHANGED_EXISTING = "changed_existing"


@dataclass
class StoredDocument:
    """Identity and freshness marker of a document already in the store."""
    doc_id: uuid.UUID
    last_modified: str = ""


@dataclass
class IndexPlan:
    """Decision computed once per URL before any write happens."""
    url: str
    action: IndexAction
    doc_id: uuid.UUID
    last_modified: str = ""
    previous_terms: Set[str] = field(default_factory=set)
    probe_error: Optional[Exception] = None


class IndexStatus(str, Enum):
    INDEXED = "indexed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class IndexResult:
    """Per-document outcome returned to the caller."""
    url: str
    status: IndexStatus
    action: Optional[IndexAction] = None
    doc_id: Optional[uuid.UUID] = None
    error: Optional[Exception] = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.status != IndexStatus.FAILED
