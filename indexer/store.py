"""SQL store adapter for the keyword index.

Runs parameterized statements through a SQLAlchemy engine. Each statement
commits on its own; batches either share one transaction (logged) or
commit statement by statement (unlogged). Not-found is reported as
``RowNotFound`` so callers can tell it apart from a failed query.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from pipelines.errors import StoreReadError, StoreWriteError

from .schema import create_schema, drop_schema

logger = logging.getLogger(__name__)


class RowNotFound(LookupError):
    """A single-row query matched nothing."""

    def __init__(self, purpose: str = ""):
        super().__init__(f"no row found for {purpose}" if purpose else "no row found")
        self.purpose = purpose


class BatchMode(str, Enum):
    """Consistency mode for grouped statements."""
    LOGGED = "logged"
    UNLOGGED = "unlogged"


@dataclass
class Statement:
    """A parameterized write with the context needed to report a failure."""
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    table: str = ""
    key: str = ""


class SQLStore:
    """Store adapter over a SQLAlchemy engine."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> 'SQLStore':
        """Create a store from a SQLAlchemy URL.

        In-memory SQLite shares a single connection so that every statement
        sees the same database.
        """
        kwargs: Dict[str, Any] = {"echo": echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        logger.info(f"Store initialized: {engine.url.render_as_string(hide_password=True)}")
        return cls(engine)

    def create_schema(self) -> None:
        create_schema(self.engine)

    def drop_schema(self) -> None:
        drop_schema(self.engine)

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Store connections closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Reads

    def query_one(self, sql: str, params: Optional[Dict[str, Any]] = None,
                  purpose: str = "") -> Row:
        """Return the first matching row.

        Raises:
            RowNotFound: If nothing matched
            StoreReadError: If the query itself failed
        """
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(sql), params or {}).first()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Query failed: {e}", purpose=purpose) from e

        if row is None:
            raise RowNotFound(purpose)
        return row

    def query_all(self, sql: str, params: Optional[Dict[str, Any]] = None,
                  purpose: str = "") -> List[Row]:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(text(sql), params or {}))
        except SQLAlchemyError as e:
            raise StoreReadError(f"Query failed: {e}", purpose=purpose) from e

    def scalar(self, sql: str, params: Optional[Dict[str, Any]] = None,
               purpose: str = "") -> Any:
        """Return the first column of the first row, or None."""
        try:
            with self.engine.connect() as conn:
                return conn.execute(text(sql), params or {}).scalar()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Query failed: {e}", purpose=purpose) from e

    # Writes

    def execute(self, statement: Statement) -> int:
        """Run one statement in its own transaction and return the row count."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(statement.sql), statement.params)
                return result.rowcount
        except SQLAlchemyError as e:
            raise StoreWriteError(
                f"Statement failed: {e}", table=statement.table, key=statement.key
            ) from e

    def execute_batch(self, statements: Iterable[Statement],
                      mode: BatchMode = BatchMode.LOGGED) -> int:
        """Run a group of statements.

        Logged batches apply all-or-nothing; unlogged batches stop at the
        first failing statement, keeping the ones before it.

        Returns:
            Number of statements executed
        """
        statements = list(statements)
        if not statements:
            return 0

        if mode == BatchMode.UNLOGGED:
            for statement in statements:
                self.execute(statement)
            return len(statements)

        current = statements[0]
        try:
            with self.engine.begin() as conn:
                for current in statements:
                    conn.execute(text(current.sql), current.params)
        except SQLAlchemyError as e:
            raise StoreWriteError(
                f"Batch of {len(statements)} statements failed: {e}",
                table=current.table,
                key=current.key,
            ) from e

        return len(statements)
