"""SqliteStore — the default local store, tuned for bulk loads in WAL mode."""

from __future__ import annotations

import logging
import sqlite3
from typing import Sequence

from ingestion.entities.base import EntitySchema
from ingestion.loaders.base import RowRejectedError, Store

logger = logging.getLogger(__name__)

# Applied once per connection, before any transaction begins.
BULK_LOAD_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA cache_size = 10000",
)


class SqliteStore(Store):
    """Store handle over a :mod:`sqlite3` connection in autocommit mode.

    The connection must be opened with ``isolation_level=None`` so that the
    ``BEGIN``/``COMMIT`` issued by the transaction controller are the only
    transaction boundaries.
    """

    engine = "sqlite"

    def __init__(self, conn: sqlite3.Connection) -> None:
        if conn.isolation_level is not None:
            raise ValueError("SqliteStore needs a connection opened with isolation_level=None")
        super().__init__(conn)

    @classmethod
    def connect(cls, db_path: str, tune: bool = True) -> SqliteStore:
        """Open *db_path* and optionally apply :data:`BULK_LOAD_PRAGMAS`."""
        conn = sqlite3.connect(db_path, isolation_level=None)
        if tune:
            for pragma in BULK_LOAD_PRAGMAS:
                conn.execute(pragma)
        logger.info("SqliteStore initialised (path=%s)", db_path)
        return cls(conn)

    def rollback(self) -> None:
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def checkpoint(self) -> None:
        busy, log_frames, checkpointed = self._conn.execute(
            "PRAGMA wal_checkpoint(PASSIVE)"
        ).fetchone()
        logger.debug(
            "WAL checkpoint (busy=%s, frames=%s, checkpointed=%s)",
            busy, log_frames, checkpointed,
        )

    def execute_batch(self, schema: EntitySchema, rows: Sequence[tuple]) -> int:
        if not rows:
            return 0
        self._conn.executemany(schema.upsert_sql("?"), rows)
        return len(rows)

    def execute_row(self, schema: EntitySchema, row: tuple) -> None:
        try:
            self._conn.execute(schema.upsert_sql("?"), row)
        except sqlite3.IntegrityError as exc:
            raise RowRejectedError(schema.table, schema.key_of(row), str(exc)) from exc
