"""DuckDbStore — analytical local store backed by DuckDB."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

import duckdb

from ingestion.entities.base import EntitySchema
from ingestion.loaders.base import RowRejectedError, Store

logger = logging.getLogger(__name__)


class DuckDbStore(Store):
    """Store handle over a :mod:`duckdb` connection.

    DuckDB aborts the whole transaction on any constraint error and has no
    savepoints, so :meth:`execute_row` rejects rows with a NULL in a
    ``NOT NULL`` column before sending them; every other constraint error is
    fatal to the open transaction.
    """

    engine = "duckdb"

    @classmethod
    def connect(cls, db_path: str) -> DuckDbStore:
        conn = duckdb.connect(db_path)
        logger.info("DuckDbStore initialised (path=%s)", db_path)
        return cls(conn)

    def begin(self) -> None:
        self._conn.execute("BEGIN TRANSACTION")

    def checkpoint(self) -> None:
        self._conn.execute("CHECKPOINT")
        logger.debug("DuckDB checkpoint done")

    def execute_batch(self, schema: EntitySchema, rows: Sequence[tuple]) -> int:
        if not rows:
            return 0
        self._conn.executemany(schema.upsert_sql("?"), list(rows))
        return len(rows)

    def execute_row(self, schema: EntitySchema, row: tuple) -> None:
        for column, value in zip(schema.columns, row):
            if value is None and not column.nullable:
                raise RowRejectedError(
                    schema.table,
                    schema.key_of(row),
                    f"NOT NULL constraint failed: {schema.table}.{column.name}",
                )
        self._conn.execute(schema.upsert_sql("?"), row)

    def create_schema(self, schemas: Iterable[EntitySchema]) -> None:
        # Secondary ART indexes block ON CONFLICT DO UPDATE of indexed
        # columns in DuckDB; only the primary keys are created.
        for schema in schemas:
            for statement in schema.ddl(indexes=False):
                self._conn.execute(statement)
        logger.info("CNPJ tables ensured (%s)", self.engine)
