"""Size-bounded statement batching."""

import logging
from typing import Callable, List, Optional

from .store import BatchMode, Statement

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 10

FlushCallback = Callable[[str, int], None]


class BatchWriter:
    """Accumulates statements and flushes them in groups of ``batch_size``.

    A batch is sent as soon as it is full; ``flush()`` sends the remainder.
    Used as a context manager, the remainder is flushed on a clean exit
    only, so a failure never sends a partial tail.
    """

    def __init__(self, store, batch_size: int = MAX_BATCH_SIZE,
                 mode: BatchMode = BatchMode.LOGGED,
                 on_flush: Optional[FlushCallback] = None):
        if batch_size < 1:
            raise ValueError("Batch size must be at least 1")
        self.store = store
        self.batch_size = batch_size
        self.mode = mode
        self.on_flush = on_flush
        self._pending: List[Statement] = []
        self.batches_flushed = 0
        self.statements_written = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.flush()

    def add(self, statement: Statement) -> None:
        self._pending.append(statement)
        if len(self._pending) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._pending:
            return

        batch, self._pending = self._pending, []
        self.store.execute_batch(batch, self.mode)
        self.batches_flushed += 1
        self.statements_written += len(batch)

        table = batch[0].table
        logger.debug(f"Flushed batch of {len(batch)} statements to {table or 'store'}")
        if self.on_flush:
            self.on_flush(table, len(batch))
