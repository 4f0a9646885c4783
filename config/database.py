"""Database configuration and store factory for WebIndex.

Any SQLAlchemy URL works; SQLite is the default for local runs and
PostgreSQL for shared deployments.
"""

import logging
from pydantic import BaseModel, Field
from sqlalchemy import event

from indexer.store import SQLStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///webindex.db"


class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Log every SQL statement")
    create_schema: bool = Field(default=True, description="Create missing tables on startup")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


def _configure_sqlite(engine) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Set up connection-level pragmas"""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        # Wait for a concurrent writer instead of failing immediately
        cursor.execute("PRAGMA busy_timeout = 5000")
        cursor.close()


def create_store(config: DatabaseConfig) -> SQLStore:
    """Create a store for ``config`` and ensure the schema when asked to."""
    store = SQLStore.from_url(config.url, echo=config.echo)
    if config.is_sqlite:
        _configure_sqlite(store.engine)
    if config.create_schema:
        store.create_schema()
    logger.info(f"Database store ready ({'sqlite' if config.is_sqlite else 'server'})")
    return store
