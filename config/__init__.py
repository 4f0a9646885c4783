"""Configuration module for WebIndex.

Provides configuration management for the database, crawling, indexing
and logging.
"""

from .database import (
    DatabaseConfig,
    create_store
)
from .settings import (
    IndexerSettings,
    CrawlConfig,
    IndexingConfig,
    LoggingConfig,
    load_settings
)

__all__ = [
    'DatabaseConfig',
    'create_store',
    'IndexerSettings',
    'CrawlConfig',
    'IndexingConfig',
    'LoggingConfig',
    'load_settings'
]
