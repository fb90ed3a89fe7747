"""CLI entry point: python -m ingestion [entity ...]

Loads Receita Federal CNPJ files from a data directory into the store:
  1. Lookup tables (cnaes, motivos, municipios, naturezas, paises, qualificacoes)
  2. Empresas, then estabelecimentos, simples and socios
Each file is one independent run; a failed file can be re-run from scratch.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ingestion.config import IngestSettings
from ingestion.entities import ENTITY_REGISTRY
from ingestion.loaders import ENGINES, open_store
from ingestion.pipeline import IngestionError, IngestResult, ingest_file
from ingestion.sources import discover_files

logger = logging.getLogger("ingestion")

VALID_ENTITIES = list(ENTITY_REGISTRY.keys())


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _build_parser(settings: IngestSettings | None = None) -> argparse.ArgumentParser:
    settings = settings or IngestSettings()
    parser = argparse.ArgumentParser(
        prog="python -m ingestion",
        description="CNPJ open data ingestion — parse, batch, upsert.",
    )
    parser.add_argument(
        "entities",
        nargs="*",
        type=_entity,
        metavar="entity",
        help=f"Entities to load (default: all). Choices: {', '.join(VALID_ENTITIES)}.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=settings.data_dir,
        help="Directory with extracted files or .zip archives (default: $CNPJ_DATA_DIR or dados).",
    )
    parser.add_argument(
        "--engine",
        choices=ENGINES,
        default=settings.engine,
        help="Target store (default: $CNPJ_ENGINE or sqlite).",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=settings.db_path,
        help="Database file for sqlite/duckdb. Falls back to $CNPJ_DB_PATH.",
    )
    parser.add_argument(
        "--pg-dsn",
        default=settings.pg_dsn,
        help="PostgreSQL DSN. Falls back to $CNPJ_PG_DSN env var.",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=settings.batch_size,
        help="Rows per transaction (default: per entity).",
    )
    parser.add_argument(
        "--checkpoint-every",
        type=_positive_int,
        default=settings.checkpoint_every,
        help="Committed batches between checkpoints (default: per entity).",
    )
    parser.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=settings.chunk_size,
        help="Bytes read from each source file at a time.",
    )
    parser.add_argument(
        "--pg-checkpoint",
        action="store_true",
        default=settings.pg_checkpoint,
        help="Issue CHECKPOINT on PostgreSQL (needs the pg_checkpoint role).",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables and indexes before loading.",
    )
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep going with the next file when one fails (exit code is still 1).",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _entity(value: str) -> str:
    if value not in ENTITY_REGISTRY:
        raise argparse.ArgumentTypeError(
            f"invalid entity {value!r} (choose from {', '.join(VALID_ENTITIES)})"
        )
    return value


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    entities = args.entities or VALID_ENTITIES
    logger.info("=== CNPJ ingestion: %s ===", ", ".join(entities))

    files = discover_files(args.data_dir, entities)
    if not files:
        logger.error("No source files found under %s", args.data_dir)
        return 1

    results: list[IngestResult] = []
    failures: list[IngestionError] = []
    with open_store(args.engine, args.db_path, args.pg_dsn, args.pg_checkpoint) as store:
        if args.create_schema:
            store.create_schema({schema.name: schema for schema, _ in files}.values())

        for schema, path in files:
            try:
                results.append(
                    ingest_file(
                        store,
                        schema,
                        path,
                        batch_size=args.batch_size,
                        checkpoint_every=args.checkpoint_every,
                        chunk_size=args.chunk_size,
                    )
                )
            except IngestionError as exc:
                logger.error("File %s failed: %s", path.name, exc)
                failures.append(exc)
                if not args.continue_on_error:
                    break

    _print_summary(results, failures)
    if failures:
        return 1
    logger.info("=== Done ===")
    return 0


def _print_summary(results: list[IngestResult], failures: list[IngestionError]) -> None:
    """Log per-table totals for the run."""
    logger.info("--- Summary ---")
    totals: dict[str, int] = {}
    for result in results:
        totals[result.table] = totals.get(result.table, 0) + result.rows_committed
    for table, rows in totals.items():
        logger.info("  %s: %d rows", table, rows)
    for failure in failures:
        logger.warning(
            "  failed: %s (%d rows committed before abort)", failure.table, failure.rows_committed
        )


if __name__ == "__main__":
    sys.exit(main())
