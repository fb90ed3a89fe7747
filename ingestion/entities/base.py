"""Declarative entity descriptors shared by the parser, writer and stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

FieldKind = Literal["text", "numeric", "date", "flag"]

_SQL_TYPES: dict[str, str] = {
    "text": "TEXT",
    "numeric": "DECIMAL(18,2)",
    "date": "DATE",
    "flag": "INTEGER",
}


@dataclass(frozen=True)
class Column:
    """One positional field of a source file and its target column."""

    name: str
    kind: FieldKind = "text"
    nullable: bool = True

    @property
    def sql_type(self) -> str:
        return _SQL_TYPES[self.kind]


@dataclass(frozen=True)
class EntitySchema:
    """Everything the generic pipeline needs to know about one entity.

    Attributes:
        name: Registry key, also used on the command line (e.g. ``"empresas"``).
        table: Target table name.
        columns: Columns in source-file order.
        key: Natural key column names; the upsert conflict target.
        min_fields: Lines with fewer fields are skipped silently.
        batch_size: Default rows per transaction.
        checkpoint_every: Committed batches between durability checkpoints.
        tolerate_row_errors: Write row by row and skip rows the store rejects.
        file_patterns: Substrings identifying this entity's source files.
        indexes: Extra non-unique indexes created by the schema bootstrap.
        reference: Small lookup table, processed before the large files.
    """

    name: str
    table: str
    columns: tuple[Column, ...]
    key: tuple[str, ...]
    min_fields: int
    batch_size: int = 10_000
    checkpoint_every: int = 10
    tolerate_row_errors: bool = False
    file_patterns: tuple[str, ...] = ()
    indexes: tuple[str, ...] = ()
    reference: bool = False
    _positions: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"{self.name}: duplicate column names")
        missing = [k for k in self.key if k not in names]
        if missing:
            raise ValueError(f"{self.name}: key columns not declared: {missing}")
        if not 1 <= self.min_fields <= len(self.columns):
            raise ValueError(
                f"{self.name}: min_fields must be between 1 and {len(self.columns)}"
            )
        object.__setattr__(self, "_positions", {n: i for i, n in enumerate(names)})

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def update_columns(self) -> list[str]:
        """Non-key columns, overwritten on natural-key conflict."""
        return [c.name for c in self.columns if c.name not in self.key]

    def key_of(self, row: tuple) -> tuple:
        """Extract the natural key values from a parsed row."""
        return tuple(row[self._positions[k]] for k in self.key)

    def upsert_sql(self, placeholder: str = "?") -> str:
        """``INSERT ... ON CONFLICT (key) DO UPDATE SET`` for SQLite and DuckDB."""
        cols = self.column_names
        values = ", ".join([placeholder] * len(cols))
        conflict = ", ".join(self.key)
        head = f"INSERT INTO {self.table} ({', '.join(cols)}) VALUES ({values}) ON CONFLICT ({conflict})"
        updates = self.update_columns
        if not updates:
            return f"{head} DO NOTHING"
        sets = ", ".join(f"{c} = excluded.{c}" for c in updates)
        return f"{head} DO UPDATE SET {sets}"

    def ddl(self, indexes: bool = True) -> list[str]:
        """``CREATE TABLE`` / ``CREATE INDEX`` statements, all ``IF NOT EXISTS``."""
        lines = [
            f"    {c.name} {c.sql_type}{'' if c.nullable else ' NOT NULL'}"
            for c in self.columns
        ]
        lines.append(f"    PRIMARY KEY ({', '.join(self.key)})")
        body = ",\n".join(lines)
        statements = [f"CREATE TABLE IF NOT EXISTS {self.table} (\n{body}\n)"]
        for column in self.indexes if indexes else ():
            statements.append(
                f"CREATE INDEX IF NOT EXISTS idx_{self.table}_{column} "
                f"ON {self.table} ({column})"
            )
        return statements
