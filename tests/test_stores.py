"""Tests for the store handles: SQLite tuning, DuckDB upserts, PostgreSQL statement flow."""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import psycopg
import pytest
from psycopg import sql

from factories import count_rows, empresa_line, to_stream
from ingestion.entities import CNAES, EMPRESAS
from ingestion.loaders import RowRejectedError, open_store
from ingestion.loaders.duckdb_store import DuckDbStore
from ingestion.loaders.postgres_store import PostgresStore
from ingestion.loaders.sqlite_store import SqliteStore
from ingestion.pipeline import PipelineDriver


class TestSqliteStore:
    def test_requires_autocommit_connection(self):
        conn = sqlite3.connect(":memory:")
        try:
            with pytest.raises(ValueError):
                SqliteStore(conn)
        finally:
            conn.close()

    def test_wal_mode(self, sqlite_store):
        mode = sqlite_store.fetch_all("PRAGMA journal_mode")[0]["journal_mode"]

        assert mode == "wal"

    def test_rollback_without_transaction_is_noop(self, sqlite_store):
        sqlite_store.rollback()

    def test_row_rejected_on_constraint(self, sqlite_store):
        sqlite_store.begin()
        with pytest.raises(RowRejectedError) as excinfo:
            sqlite_store.execute_row(CNAES, (None, "sem codigo"))
        sqlite_store.execute_row(CNAES, ("0111302", "Cultivo de milho"))
        sqlite_store.commit()

        assert excinfo.value.key == (None,)
        assert count_rows(sqlite_store, "cnaes") == 1


class TestDuckDbStore:
    @pytest.fixture
    def duck_store(self, tmp_path):
        store = DuckDbStore.connect(str(tmp_path / "cnpj.duckdb"))
        store.create_schema([EMPRESAS, CNAES])
        yield store
        store.close()

    def test_ingest_is_idempotent(self, duck_store):
        lines = [empresa_line(f"{i:08d}") for i in range(25)]

        PipelineDriver(duck_store, EMPRESAS, batch_size=10).run(to_stream(*lines))
        result = PipelineDriver(duck_store, EMPRESAS, batch_size=10).run(to_stream(*lines))

        assert result.rows_committed == 25
        assert result.batches_committed == 3
        assert count_rows(duck_store, "empresas") == 25

    def test_upsert_overwrites(self, duck_store):
        PipelineDriver(duck_store, EMPRESAS).run(to_stream(empresa_line("00000001", "VELHO")))
        PipelineDriver(duck_store, EMPRESAS).run(to_stream(empresa_line("00000001", "NOVO")))

        rows = duck_store.fetch_all("SELECT razao_social FROM empresas")

        assert rows == [{"razao_social": "NOVO"}]

    def test_not_null_row_rejected_before_write(self, duck_store):
        duck_store.begin()
        with pytest.raises(RowRejectedError):
            duck_store.execute_row(CNAES, (None, "sem codigo"))
        duck_store.execute_row(CNAES, ("0111302", "Cultivo de milho"))
        duck_store.commit()

        assert count_rows(duck_store, "cnaes") == 1


def _pg_connection(autocommit=True):
    conn = MagicMock()
    conn.autocommit = autocommit
    cursor = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn, cursor


def _savepoint(command):
    return sql.SQL(command + " {}").format(sql.Identifier("ingest_row"))


class TestPostgresStore:
    def test_requires_autocommit(self):
        conn, _ = _pg_connection(autocommit=False)

        with pytest.raises(ValueError):
            PostgresStore(conn)

    def test_transaction_statements(self):
        conn, _ = _pg_connection()
        store = PostgresStore(conn)

        store.begin()
        store.commit()
        store.begin()
        store.rollback()

        assert [c.args[0] for c in conn.execute.call_args_list] == [
            "BEGIN", "COMMIT", "BEGIN", "ROLLBACK",
        ]

    def test_checkpoint_disabled_by_default(self):
        conn, _ = _pg_connection()

        PostgresStore(conn).checkpoint()

        conn.execute.assert_not_called()

    def test_checkpoint_enabled(self):
        conn, _ = _pg_connection()

        PostgresStore(conn, checkpoint_enabled=True).checkpoint()

        conn.execute.assert_called_once_with("CHECKPOINT")

    def test_execute_batch_uses_cached_upsert(self):
        conn, cursor = _pg_connection()
        store = PostgresStore(conn)
        rows = [("00000001", "A", None, None, 1.0, None, None)]

        assert store.execute_batch(EMPRESAS, rows) == 1
        store.execute_batch(EMPRESAS, rows)

        first, second = cursor.executemany.call_args_list
        assert first.args[0] is second.args[0]
        assert first.args[1] == rows

    def test_execute_batch_empty(self):
        conn, cursor = _pg_connection()

        assert PostgresStore(conn).execute_batch(EMPRESAS, []) == 0
        cursor.executemany.assert_not_called()

    def test_execute_row_releases_savepoint(self):
        conn, cursor = _pg_connection()

        PostgresStore(conn).execute_row(CNAES, ("0111302", "Cultivo de milho"))

        statements = [c.args[0] for c in cursor.execute.call_args_list]
        assert statements[0] == _savepoint("SAVEPOINT")
        assert statements[2] == _savepoint("RELEASE SAVEPOINT")

    def test_execute_row_rolls_back_to_savepoint(self):
        conn, cursor = _pg_connection()
        cursor.execute.side_effect = [None, psycopg.errors.NotNullViolation("null value"), None]

        with pytest.raises(RowRejectedError) as excinfo:
            PostgresStore(conn).execute_row(CNAES, (None, "sem codigo"))

        assert excinfo.value.key == (None,)
        assert cursor.execute.call_args_list[-1].args[0] == _savepoint("ROLLBACK TO SAVEPOINT")

    def test_fetch_all(self):
        conn, cursor = _pg_connection()
        column = MagicMock()
        column.name = "total"
        cursor.description = [column]
        cursor.fetchall.return_value = [(3,)]

        assert PostgresStore(conn).fetch_all("SELECT 3 AS total") == [{"total": 3}]


class TestOpenStore:
    def test_sqlite(self, tmp_path):
        with open_store("sqlite", str(tmp_path / "x.db")) as store:
            assert store.engine == "sqlite"

    def test_duckdb(self, tmp_path):
        with open_store("duckdb", str(tmp_path / "x.duckdb")) as store:
            assert store.engine == "duckdb"

    def test_postgres_requires_dsn(self):
        with pytest.raises(ValueError):
            with open_store("postgres"):
                pass

    def test_unknown_engine(self):
        with pytest.raises(ValueError):
            with open_store("oracle"):
                pass
