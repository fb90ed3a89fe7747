"""Store handle interface shared by the SQLite, DuckDB and PostgreSQL stores."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence

from ingestion.entities.base import EntitySchema

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for errors raised by a store handle."""


class RowRejectedError(StoreError):
    """A single row violated a constraint without aborting the transaction."""

    def __init__(self, table: str, key: tuple, reason: str) -> None:
        super().__init__(f"{table} row {key!r} rejected: {reason}")
        self.table = table
        self.key = key
        self.reason = reason


class Store(ABC):
    """Transactional handle over one open database connection.

    The handle never opens or closes connections on its own initiative
    beyond :meth:`close`; whoever created it owns its lifecycle. Transactions
    are explicit: nothing is written outside :meth:`begin` / :meth:`commit`.
    """

    engine: str = ""
    placeholder: str = "?"

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    @property
    def connection(self) -> Any:
        return self._conn

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self) -> None:
        self._conn.execute("BEGIN")

    def commit(self) -> None:
        self._conn.execute("COMMIT")

    def rollback(self) -> None:
        self._conn.execute("ROLLBACK")

    @abstractmethod
    def checkpoint(self) -> None:
        """Flush write-ahead data into the primary store file."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    def execute_batch(self, schema: EntitySchema, rows: Sequence[tuple]) -> int:
        """Upsert *rows* as one bulk operation; return the number written."""

    @abstractmethod
    def execute_row(self, schema: EntitySchema, row: tuple) -> None:
        """Upsert one row, raising :class:`RowRejectedError` on a row-level
        constraint violation that leaves the transaction usable."""

    # ------------------------------------------------------------------
    # Schema bootstrap and reads
    # ------------------------------------------------------------------

    def create_schema(self, schemas: Iterable[EntitySchema]) -> None:
        """Create the target tables and indexes if they do not exist yet."""
        for schema in schemas:
            for statement in schema.ddl():
                self._conn.execute(statement)
            logger.debug("Table %s ensured (%s)", schema.table, self.engine)
        logger.info("CNPJ tables ensured (%s)", self.engine)

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a read query and return rows as dicts keyed by column name."""
        cur = self._conn.execute(query, params)
        columns = [d[0] for d in cur.description]
        return [dict(zip(columns, row)) for row in cur.fetchall()]

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()
        logger.info("%s store connection closed", self.engine)

    # ------------------------------------------------------------------
    # Context manager support
    # ------------------------------------------------------------------

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
