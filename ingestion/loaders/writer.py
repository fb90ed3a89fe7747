"""UpsertWriter — write one batch of parsed rows into the open transaction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from ingestion.entities.base import EntitySchema
from ingestion.loaders.base import RowRejectedError, Store

logger = logging.getLogger(__name__)


@dataclass
class RejectedRow:
    """A single row the store refused, identified by its natural key."""

    key: tuple
    error: str


@dataclass
class WriteResult:
    """Outcome of writing one batch."""

    accepted: int = 0
    rejected: list[RejectedRow] = field(default_factory=list)


class UpsertWriter:
    """Execute batches of one entity as insert-or-replace by natural key.

    Entities flagged ``tolerate_row_errors`` are written row by row so a row
    the store rejects can be logged and dropped while the batch continues.
    Everything else goes out as a single bulk statement, and any error is
    left to propagate to the transaction controller.
    """

    def __init__(self, store: Store, schema: EntitySchema) -> None:
        self.store = store
        self.schema = schema

    def write(self, batch: Sequence[tuple]) -> WriteResult:
        if not batch:
            return WriteResult()
        if not self.schema.tolerate_row_errors:
            return WriteResult(accepted=self.store.execute_batch(self.schema, batch))

        result = WriteResult()
        for row in batch:
            try:
                self.store.execute_row(self.schema, row)
            except RowRejectedError as exc:
                logger.warning(
                    "Error upserting %s row %s: %s", self.schema.table, exc.key, exc.reason
                )
                result.rejected.append(RejectedRow(key=exc.key, error=exc.reason))
                continue
            result.accepted += 1
        return result
