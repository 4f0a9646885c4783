"""Table definitions for the keyword index.

Four tables: documents, per-document term counts, corpus-wide document
frequency, and per-document TF-IDF scores.
"""

import logging

from sqlalchemy import (
    Column, Float, Index, Integer, LargeBinary, MetaData, PrimaryKeyConstraint,
    String, Table, Text,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("doc_id", String(36), primary_key=True),
    Column("title", Text, nullable=False, default=""),
    Column("url", String(2048), nullable=False, unique=True),
    Column("last_updated", Text, nullable=False, default=""),
    Column("content", LargeBinary, nullable=True),
    Column("links", Text, nullable=False, default="[]"),  # JSON array
    Column("total_tokens", Integer, nullable=False, default=0),
)

term_frequency = Table(
    "term_frequency",
    metadata,
    Column("term", Text, nullable=False),
    Column("doc_id", String(36), nullable=False),
    Column("frequency", Integer, nullable=False),
    PrimaryKeyConstraint("term", "doc_id"),
    Index("idx_term_frequency_doc_id", "doc_id"),
)

document_frequency = Table(
    "document_frequency",
    metadata,
    Column("term", Text, primary_key=True),
    Column("doc_count", Integer, nullable=False, default=0),
)

tfidf_scores = Table(
    "tfidf_scores",
    metadata,
    Column("term", Text, nullable=False),
    Column("doc_id", String(36), nullable=False),
    Column("tfidf_score", Float, nullable=False),
    PrimaryKeyConstraint("term", "doc_id"),
    Index("idx_tfidf_scores_doc_id", "doc_id"),
)

TABLE_NAMES = [table.name for table in metadata.sorted_tables]


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they do not exist."""
    metadata.create_all(engine)
    logger.info(f"Schema ensured: {', '.join(TABLE_NAMES)}")


def drop_schema(engine: Engine) -> None:
    metadata.drop_all(engine)
    logger.info("Schema dropped")
