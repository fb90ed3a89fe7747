"""Record parser — one delimited line to a tuple of canonical values."""

from __future__ import annotations

from typing import Iterable, Iterator

from ingestion.entities.base import EntitySchema
from ingestion.parsers.normalizers import NORMALIZERS


DELIMITER = ";"
QUOTE = '"'
QUOTED_DELIMITER = QUOTE + DELIMITER + QUOTE


def split_line(line: str) -> list[str]:
    """Split a raw line into fields with surrounding quotes stripped.

    A fully quoted line, one wrapped in quotes that also contains the
    quoted separator ``";"``, is split on ``";"`` so that a delimiter inside
    a quoted value survives. Anything else is split on ``;`` and each field
    wrapped in a pair of quotes loses that pair; quotes inside a value stay.
    """
    line = line.rstrip("\r\n")
    if not line.strip():
        return []
    if (
        len(line) >= 2
        and line.startswith(QUOTE)
        and line.endswith(QUOTE)
        and QUOTED_DELIMITER in line
    ):
        return line[1:-1].split(QUOTED_DELIMITER)
    fields = line.split(DELIMITER)
    return [_strip_quotes(f) for f in fields]


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        return value[1:-1]
    return value


class RecordParser:
    """Turn raw lines of one entity's file into normalized row tuples.

    Rows are positional, in the descriptor's column order. Lines with fewer
    than ``schema.min_fields`` fields are dropped and counted in
    :attr:`skipped`; missing optional trailing fields become ``None``.
    """

    def __init__(self, schema: EntitySchema) -> None:
        self.schema = schema
        self.skipped = 0
        self._width = len(schema.columns)
        self._normalizers = [NORMALIZERS[c.kind] for c in schema.columns]

    def parse(self, line: str) -> tuple | None:
        """Parse one line, returning ``None`` for a skippable defect."""
        fields = split_line(line)
        if len(fields) < self.schema.min_fields:
            return None
        if len(fields) < self._width:
            fields.extend([None] * (self._width - len(fields)))
        return tuple(
            normalize(raw) for normalize, raw in zip(self._normalizers, fields)
        )

    def iter_records(self, lines: Iterable[str]) -> Iterator[tuple]:
        """Lazily parse *lines*, silently skipping short or blank ones."""
        for line in lines:
            row = self.parse(line)
            if row is None:
                self.skipped += 1
                continue
            yield row
