"""Locate Receita Federal source files and open them as byte streams."""

from __future__ import annotations

import logging
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from ingestion.entities import ENTITY_REGISTRY, EntitySchema

logger = logging.getLogger(__name__)


@contextmanager
def open_source(path: Path) -> Iterator[BinaryIO]:
    """Open a source file for binary reading.

    A ``.zip`` archive is read in place: its single data member is streamed
    without extracting it to disk.
    """
    path = Path(path)
    if path.suffix.lower() == ".zip":
        with zipfile.ZipFile(path) as archive:
            members = [m for m in archive.infolist() if not m.is_dir()]
            if len(members) != 1:
                raise ValueError(
                    f"{path.name}: expected exactly one member, found {len(members)}"
                )
            logger.debug("Streaming %s from %s", members[0].filename, path.name)
            with archive.open(members[0]) as fh:
                yield fh
    else:
        with path.open("rb") as fh:
            yield fh


def matches(schema: EntitySchema, path: Path) -> bool:
    """Whether *path* looks like one of *schema*'s source files."""
    name = path.name.upper()
    return any(pattern in name for pattern in schema.file_patterns)


def discover_files(
    data_dir: Path,
    entities: Iterable[str] | None = None,
) -> list[tuple[EntitySchema, Path]]:
    """Find source files under *data_dir*, in processing order.

    Entities follow :data:`ENTITY_REGISTRY` order (lookup tables, then
    companies, establishments, simples, partners) and files of one entity
    are sorted by name. When both extracted files and ``.zip`` archives are
    present for an entity, only the extracted files are used.
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        logger.warning("Data directory does not exist: %s", data_dir)
        return []

    wanted = set(entities) if entities is not None else set(ENTITY_REGISTRY)
    unknown = wanted - set(ENTITY_REGISTRY)
    if unknown:
        raise KeyError(f"Unknown entities: {', '.join(sorted(unknown))}")

    files = sorted(p for p in data_dir.iterdir() if p.is_file())
    found: list[tuple[EntitySchema, Path]] = []
    for name, schema in ENTITY_REGISTRY.items():
        if name not in wanted:
            continue
        candidates = [p for p in files if matches(schema, p)]
        plain = [p for p in candidates if p.suffix.lower() != ".zip"]
        selected = plain or candidates
        if not selected:
            logger.debug("No files found for %s under %s", name, data_dir)
        found.extend((schema, p) for p in selected)
    return found
