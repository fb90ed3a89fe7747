"""Tests for the ingestion CLI parser and entry point."""

from __future__ import annotations

import sqlite3
import zipfile

import pytest

from factories import empresa_line, estabelecimento_line
from ingestion.__main__ import VALID_ENTITIES, _build_parser, main
from ingestion.config import IngestSettings


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """Keep a developer's CNPJ_* variables or .env out of the defaults."""
    monkeypatch.chdir(tmp_path)
    for name in ("DATA_DIR", "ENGINE", "DB_PATH", "PG_DSN", "BATCH_SIZE", "CHECKPOINT_EVERY"):
        monkeypatch.delenv(f"CNPJ_{name}", raising=False)


def _write(path, *lines):
    path.write_bytes(("\n".join(lines) + "\n").encode("latin-1"))


def _count(db_path, table):
    with sqlite3.connect(db_path) as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class TestCLIParser:
    """Test CLI argument parsing without running any ingestion."""

    def test_no_entities_means_all(self):
        args = _build_parser().parse_args([])

        assert args.entities == []
        assert VALID_ENTITIES[0] == "cnaes"
        assert VALID_ENTITIES[-1] == "socios"

    def test_valid_entities(self):
        args = _build_parser().parse_args(["empresas", "socios"])

        assert args.entities == ["empresas", "socios"]

    def test_invalid_entity(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["invalid_entity"])

    def test_defaults(self):
        args = _build_parser().parse_args([])

        assert str(args.data_dir) == "dados"
        assert args.engine == "sqlite"
        assert args.db_path == "cnpj.db"
        assert args.batch_size is None
        assert args.checkpoint_every is None
        assert args.create_schema is False
        assert args.continue_on_error is False
        assert args.verbose is False

    def test_defaults_from_settings(self):
        settings = IngestSettings(engine="duckdb", batch_size=500)
        args = _build_parser(settings).parse_args([])

        assert args.engine == "duckdb"
        assert args.batch_size == 500

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv("CNPJ_DATA_DIR", "/srv/rfb")
        monkeypatch.setenv("CNPJ_CHECKPOINT_EVERY", "3")
        args = _build_parser().parse_args([])

        assert str(args.data_dir) == "/srv/rfb"
        assert args.checkpoint_every == 3

    def test_flags_override_defaults(self):
        args = _build_parser().parse_args(
            ["--engine", "postgres", "--pg-dsn", "postgresql://x", "--batch-size", "100", "-v"]
        )

        assert args.engine == "postgres"
        assert args.pg_dsn == "postgresql://x"
        assert args.batch_size == 100
        assert args.verbose is True

    def test_invalid_engine(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["--engine", "oracle"])

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_batch_size_must_be_positive(self, value):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["--batch-size", value])


class TestMain:
    def test_loads_entities_in_order(self, tmp_path):
        data_dir = tmp_path / "dados"
        data_dir.mkdir()
        _write(data_dir / "Empresas0.csv", empresa_line("11111111"), empresa_line("22222222"))
        _write(data_dir / "Estabelecimentos0.csv", estabelecimento_line("11111111"))
        _write(data_dir / "Cnaes.csv", '"4711302";"Comercio varejista"')
        db_path = tmp_path / "out.db"

        code = main(["--data-dir", str(data_dir), "--db", str(db_path), "--create-schema"])

        assert code == 0
        assert _count(db_path, "cnaes") == 1
        assert _count(db_path, "empresas") == 2
        assert _count(db_path, "estabelecimentos") == 1

    def test_entity_selection(self, tmp_path):
        data_dir = tmp_path / "dados"
        data_dir.mkdir()
        _write(data_dir / "Empresas0.csv", empresa_line("11111111"))
        _write(data_dir / "Cnaes.csv", '"4711302";"Comercio varejista"')
        db_path = tmp_path / "out.db"

        code = main(["empresas", "--data-dir", str(data_dir), "--db", str(db_path), "--create-schema"])

        assert code == 0
        assert _count(db_path, "empresas") == 1
        with sqlite3.connect(db_path) as conn:
            tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        assert "cnaes" not in tables

    def test_no_source_files(self, tmp_path):
        code = main(["--data-dir", str(tmp_path / "empty"), "--db", str(tmp_path / "out.db")])

        assert code == 1

    def _data_dir_with_broken_archive(self, tmp_path):
        data_dir = tmp_path / "dados"
        data_dir.mkdir()
        with zipfile.ZipFile(data_dir / "Cnaes.zip", "w") as archive:
            archive.writestr("a.CNAECSV", '"1";"x"\n')
            archive.writestr("b.CNAECSV", '"2";"y"\n')
        _write(data_dir / "Empresas0.csv", empresa_line("11111111"))
        return data_dir

    def test_stops_at_first_failure(self, tmp_path):
        data_dir = self._data_dir_with_broken_archive(tmp_path)
        db_path = tmp_path / "out.db"

        code = main(["--data-dir", str(data_dir), "--db", str(db_path), "--create-schema"])

        assert code == 1
        assert _count(db_path, "empresas") == 0

    def test_continue_on_error(self, tmp_path):
        data_dir = self._data_dir_with_broken_archive(tmp_path)
        db_path = tmp_path / "out.db"

        code = main(
            [
                "--data-dir", str(data_dir),
                "--db", str(db_path),
                "--create-schema",
                "--continue-on-error",
            ]
        )

        assert code == 1
        assert _count(db_path, "empresas") == 1
