"""Field normalizers for Receita Federal text values."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional


def parse_decimal(value: str | None) -> float | None:
    """Parse a Brazilian decimal string (comma as decimal separator).

    ``"1.500.000,00"`` becomes ``1500000.0``; empty or unparseable values
    become ``None``.
    """
    if not value or not value.strip():
        return None
    try:
        cleaned = value.strip().replace(".", "").replace(",", ".")
        return float(Decimal(cleaned))
    except (InvalidOperation, ValueError):
        return None


def parse_date(value: str | None) -> str | None:
    """Parse a ``YYYYMMDD`` date into ISO ``YYYY-MM-DD`` text.

    Empty strings, ``"0"``, ``"00000000"`` and impossible dates become
    ``None``, never a zero date.
    """
    if not value:
        return None
    v = value.strip()
    if len(v) != 8 or not v.isdigit():
        return None
    try:
        return date(int(v[:4]), int(v[4:6]), int(v[6:8])).isoformat()
    except ValueError:
        return None


def parse_flag(value: str | None) -> int:
    """``"S"`` (sim) is 1, anything else is 0."""
    return 1 if value and value.strip().upper() == "S" else 0


def parse_text(value: str | None) -> str | None:
    return value


def format_cnae(code: str | None) -> str | None:
    """Format a raw CNAE subclass code for display: ``0111301`` -> ``0111-3/01``."""
    if code is None:
        return None
    digits = "".join(ch for ch in code if ch.isdigit())
    if len(digits) >= 7:
        return f"{digits[:4]}-{digits[4]}/{digits[5:]}"
    return digits


NORMALIZERS: dict[str, Callable[[Optional[str]], object]] = {
    "text": parse_text,
    "numeric": parse_decimal,
    "date": parse_date,
    "flag": parse_flag,
}
