"""Storage for the keyword index: schema, store adapter, batching, reads."""

from .store import SQLStore, Statement, BatchMode, RowNotFound
from .batching import BatchWriter, MAX_BATCH_SIZE
from .schema import create_schema, drop_schema, metadata

__all__ = [
    'SQLStore',
    'Statement',
    'BatchMode',
    'RowNotFound',
    'BatchWriter',
    'MAX_BATCH_SIZE',
    'create_schema',
    'drop_schema',
    'metadata',
]
