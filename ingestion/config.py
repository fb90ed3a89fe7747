"""Ingestion settings, read from ``CNPJ_*`` environment variables or ``.env``."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ingestion.parsers.stream import DEFAULT_CHUNK_SIZE


class IngestSettings(BaseSettings):
    """Defaults for the command line; every field can be overridden by a flag."""

    model_config = SettingsConfigDict(
        env_prefix="CNPJ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(
        default=Path("dados"),
        description="Directory holding the extracted files or the .zip archives",
    )
    engine: Literal["sqlite", "duckdb", "postgres"] = Field(
        default="sqlite",
        description="Target store engine",
    )
    db_path: str = Field(
        default="cnpj.db",
        description="Database file for the sqlite and duckdb engines",
    )
    pg_dsn: str = Field(
        default="",
        description="PostgreSQL connection string for the postgres engine",
    )
    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rows per transaction; defaults to each entity's own size",
    )
    checkpoint_every: Optional[int] = Field(
        default=None,
        ge=1,
        description="Committed batches between checkpoints; defaults per entity",
    )
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        ge=1,
        description="Bytes read from the source stream at a time",
    )
    pg_checkpoint: bool = Field(
        default=False,
        description="Issue CHECKPOINT on PostgreSQL (needs the pg_checkpoint role)",
    )
