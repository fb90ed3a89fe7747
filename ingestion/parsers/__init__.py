"""Parsers — raw Receita Federal bytes to normalized row tuples."""

from ingestion.parsers.normalizers import (
    NORMALIZERS,
    format_cnae,
    parse_date,
    parse_decimal,
    parse_flag,
)
from ingestion.parsers.records import RecordParser, split_line
from ingestion.parsers.stream import (
    DEFAULT_CHUNK_SIZE,
    SOURCE_ENCODING,
    iter_chunks,
    iter_lines,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "NORMALIZERS",
    "RecordParser",
    "SOURCE_ENCODING",
    "format_cnae",
    "iter_chunks",
    "iter_lines",
    "parse_date",
    "parse_decimal",
    "parse_flag",
    "split_line",
]
