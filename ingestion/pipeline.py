"""Pipeline driver — stream one source file into its table.

    bytes -> lines -> RecordParser -> iter_batches -> UpsertWriter
          -> TransactionController (commit, checkpoint, reopen)

Every stage is a lazy generator pulled by the batch loop, so the next chunk
of the source is only read once the previous batch has been committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import BinaryIO, Optional

from ingestion.batching import iter_batches
from ingestion.entities.base import EntitySchema
from ingestion.loaders.base import Store
from ingestion.loaders.writer import UpsertWriter
from ingestion.parsers.records import RecordParser
from ingestion.parsers.stream import DEFAULT_CHUNK_SIZE, iter_lines
from ingestion.sources import open_source
from ingestion.transactions import TransactionController

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Counters for one file's ingestion run."""

    table: str
    rows_committed: int = 0
    rows_skipped: int = 0
    rows_rejected: int = 0
    batches_committed: int = 0
    checkpoints: int = 0


class IngestionError(Exception):
    """A file's ingestion was aborted; earlier batches stay committed."""

    def __init__(self, table: str, rows_committed: int, cause: BaseException) -> None:
        super().__init__(
            f"Ingestion into {table} aborted after {rows_committed} committed rows: {cause}"
        )
        self.table = table
        self.rows_committed = rows_committed
        self.cause = cause


class PipelineDriver:
    """Drive parser, accumulator, writer and controller for one entity.

    The store is handed in by the caller, who also closes it; the driver
    only opens and ends transactions on it.
    """

    def __init__(
        self,
        store: Store,
        schema: EntitySchema,
        batch_size: Optional[int] = None,
        checkpoint_every: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Args:
            store: Open store handle.
            schema: Descriptor of the entity being loaded.
            batch_size: Rows per transaction (default: ``schema.batch_size``).
            checkpoint_every: Batches between checkpoints
                (default: ``schema.checkpoint_every``).
            chunk_size: Bytes per read from the source stream.

        Raises:
            ValueError: if *batch_size* or *checkpoint_every* is below 1.
        """
        self.store = store
        self.schema = schema
        self.batch_size = schema.batch_size if batch_size is None else batch_size
        self.checkpoint_every = (
            schema.checkpoint_every if checkpoint_every is None else checkpoint_every
        )
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.checkpoint_every < 1:
            raise ValueError("checkpoint_every must be >= 1")
        self.chunk_size = chunk_size

    def run(self, stream: BinaryIO) -> IngestResult:
        """Drain *stream* into the store and return the run's counters.

        Raises:
            IngestionError: on any read or write failure. The open
                transaction is rolled back first; nothing is retried.
        """
        schema = self.schema
        parser = RecordParser(schema)
        writer = UpsertWriter(self.store, schema)
        controller = TransactionController(self.store, self.checkpoint_every)
        result = IngestResult(table=schema.table)

        logger.info("Ingesting %s (batch_size=%d)", schema.table, self.batch_size)
        rows = parser.iter_records(iter_lines(stream, self.chunk_size))
        try:
            controller.begin()
            for batch in iter_batches(rows, self.batch_size):
                written = controller.write_batch(partial(writer.write, batch))
                result.rows_committed += written.accepted
                result.rows_rejected += len(written.rejected)
                logger.info(
                    "Committed %d rows into %s (batch %d)",
                    result.rows_committed,
                    schema.table,
                    controller.batches_committed,
                )
                controller.reopen()
            controller.finish()
        except Exception as exc:
            controller.rollback()
            logger.error("Ingestion into %s failed: %s", schema.table, exc)
            raise IngestionError(schema.table, result.rows_committed, exc) from exc
        finally:
            result.rows_skipped = parser.skipped
            result.batches_committed = controller.batches_committed
            result.checkpoints = controller.checkpoints

        logger.info(
            "Ingestion into %s complete — committed=%d skipped=%d rejected=%d",
            schema.table,
            result.rows_committed,
            result.rows_skipped,
            result.rows_rejected,
        )
        return result


def ingest_file(
    store: Store,
    schema: EntitySchema,
    path: Path,
    batch_size: Optional[int] = None,
    checkpoint_every: Optional[int] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> IngestResult:
    """Open *path* (plain or ``.zip``) and run the pipeline over it."""
    driver = PipelineDriver(
        store,
        schema,
        batch_size=batch_size,
        checkpoint_every=checkpoint_every,
        chunk_size=chunk_size,
    )
    logger.info("Processing %s from %s", schema.name, path)
    try:
        with open_source(path) as stream:
            return driver.run(stream)
    except IngestionError:
        raise
    except Exception as exc:
        raise IngestionError(schema.table, 0, exc) from exc
