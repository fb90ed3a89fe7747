"""Open a store handle for the configured engine."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Literal

from ingestion.loaders.base import Store

logger = logging.getLogger(__name__)

Engine = Literal["sqlite", "duckdb", "postgres"]
ENGINES: tuple[str, ...] = ("sqlite", "duckdb", "postgres")


@contextmanager
def open_store(
    engine: Engine = "sqlite",
    db_path: str = "cnpj.db",
    pg_dsn: str = "",
    pg_checkpoint: bool = False,
) -> Iterator[Store]:
    """Yield a store for *engine* and close it on exit.

    Args:
        engine: ``"sqlite"`` (default), ``"duckdb"`` or ``"postgres"``.
        db_path: Database file for the local engines.
        pg_dsn: PostgreSQL connection string, required for ``"postgres"``.
        pg_checkpoint: Let the PostgreSQL store issue ``CHECKPOINT``.
    """
    if engine == "sqlite":
        from ingestion.loaders.sqlite_store import SqliteStore

        with SqliteStore.connect(db_path) as store:
            yield store
    elif engine == "duckdb":
        from ingestion.loaders.duckdb_store import DuckDbStore

        with DuckDbStore.connect(db_path) as store:
            yield store
    elif engine == "postgres":
        if not pg_dsn:
            raise ValueError("A PostgreSQL DSN is required for engine 'postgres'")
        from psycopg_pool import ConnectionPool

        from ingestion.loaders.postgres_store import PostgresStore

        with ConnectionPool(
            pg_dsn, min_size=1, max_size=1, open=True, kwargs={"autocommit": True}
        ) as pool:
            with pool.connection() as conn:
                logger.info("PostgresStore initialised (checkpoint=%s)", pg_checkpoint)
                yield PostgresStore(conn, checkpoint_enabled=pg_checkpoint)
    else:
        raise ValueError(f"Unsupported engine: {engine!r}. Use one of {', '.join(ENGINES)}.")
