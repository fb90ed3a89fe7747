"""PostgresStore — batch upsert into PostgreSQL using psycopg3."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import psycopg
from psycopg import sql

from ingestion.entities.base import EntitySchema
from ingestion.loaders.base import RowRejectedError, Store

logger = logging.getLogger(__name__)

_ROW_SAVEPOINT = "ingest_row"


class PostgresStore(Store):
    """Store handle over a psycopg3 connection.

    Uses ``INSERT ... ON CONFLICT DO UPDATE SET ...`` to guarantee idempotent
    loads. The connection must be in autocommit mode: transaction boundaries
    are the explicit ``BEGIN``/``COMMIT`` issued by the controller.
    """

    engine = "postgres"
    placeholder = "%s"

    def __init__(self, conn: psycopg.Connection, checkpoint_enabled: bool = False) -> None:
        """
        Args:
            conn: Open psycopg connection with ``autocommit=True``.
            checkpoint_enabled: Issue ``CHECKPOINT`` on :meth:`checkpoint`.
                Needs superuser or the ``pg_checkpoint`` role; when disabled
                the server's own checkpointer is relied upon.
        """
        if not conn.autocommit:
            raise ValueError("PostgresStore needs a connection with autocommit=True")
        super().__init__(conn)
        self._checkpoint_enabled = checkpoint_enabled
        self._statements: dict[str, sql.Composed] = {}

    def checkpoint(self) -> None:
        if not self._checkpoint_enabled:
            logger.debug("CHECKPOINT skipped (disabled for this store)")
            return
        self._conn.execute("CHECKPOINT")
        logger.debug("PostgreSQL checkpoint done")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def execute_batch(self, schema: EntitySchema, rows: Sequence[tuple]) -> int:
        if not rows:
            return 0
        with self._conn.cursor() as cur:
            cur.executemany(self._upsert_statement(schema), rows)
        return len(rows)

    def execute_row(self, schema: EntitySchema, row: tuple) -> None:
        savepoint = sql.Identifier(_ROW_SAVEPOINT)
        with self._conn.cursor() as cur:
            cur.execute(sql.SQL("SAVEPOINT {}").format(savepoint))
            try:
                cur.execute(self._upsert_statement(schema), row)
            except psycopg.errors.IntegrityError as exc:
                cur.execute(sql.SQL("ROLLBACK TO SAVEPOINT {}").format(savepoint))
                raise RowRejectedError(schema.table, schema.key_of(row), str(exc)) from exc
            cur.execute(sql.SQL("RELEASE SAVEPOINT {}").format(savepoint))

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        with self._conn.cursor() as cur:
            cur.execute(query, params)
            columns = [d.name for d in cur.description]
            return [dict(zip(columns, row)) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _upsert_statement(self, schema: EntitySchema) -> sql.Composed:
        """Build (once per table) the ``INSERT ... ON CONFLICT`` statement."""
        cached = self._statements.get(schema.table)
        if cached is not None:
            return cached

        columns = schema.column_names
        update_columns = schema.update_columns

        # Build query parts using psycopg.sql for safe identifier quoting
        table_id = sql.Identifier(schema.table)
        col_ids = sql.SQL(", ").join(sql.Identifier(c) for c in columns)
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in columns)
        conflict_ids = sql.SQL(", ").join(sql.Identifier(c) for c in schema.key)

        if update_columns:
            set_clause = sql.SQL(", ").join(
                sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(c))
                for c in update_columns
            )
            query = sql.SQL(
                "INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
                "ON CONFLICT ({conflict}) DO UPDATE SET {sets}"
            ).format(
                table=table_id,
                columns=col_ids,
                placeholders=placeholders,
                conflict=conflict_ids,
                sets=set_clause,
            )
        else:
            # All columns are key columns — nothing to update
            query = sql.SQL(
                "INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
                "ON CONFLICT ({conflict}) DO NOTHING"
            ).format(
                table=table_id,
                columns=col_ids,
                placeholders=placeholders,
                conflict=conflict_ids,
            )

        self._statements[schema.table] = query
        return query
