"""Descriptors for the six small code/description lookup tables."""

from __future__ import annotations

from ingestion.entities.base import Column, EntitySchema


def _lookup(
    name: str,
    table: str,
    label: str,
    patterns: tuple[str, ...],
    *,
    label_nullable: bool = False,
    batch_size: int = 10_000,
) -> EntitySchema:
    return EntitySchema(
        name=name,
        table=table,
        columns=(Column("codigo", nullable=False), Column(label, nullable=label_nullable)),
        key=("codigo",),
        min_fields=2,
        batch_size=batch_size,
        checkpoint_every=1,
        tolerate_row_errors=True,
        file_patterns=patterns,
        indexes=(label,),
        reference=True,
    )


CNAES = _lookup("cnaes", "cnaes", "descricao", ("CNAECSV", "CNAES"), label_nullable=True)
MOTIVOS = _lookup("motivos", "motivos", "descricao", ("MOTICSV", "MOTIVOS"), label_nullable=True)
NATUREZAS = _lookup("naturezas", "naturezas_juridicas", "descricao", ("NATJUCSV", "NATUREZAS"))
PAISES = _lookup("paises", "paises", "nome", ("PAISCSV", "PAISES"))
QUALIFICACOES = _lookup("qualificacoes", "qualificacoes", "descricao", ("QUALSCSV", "QUALIFICACOES"))

# The published file carries only code and name; a third UF field is
# accepted when present.
MUNICIPIOS = EntitySchema(
    name="municipios",
    table="municipios",
    columns=(
        Column("codigo", nullable=False),
        Column("nome", nullable=False),
        Column("uf"),
    ),
    key=("codigo",),
    min_fields=2,
    batch_size=1_000,
    checkpoint_every=1,
    tolerate_row_errors=True,
    file_patterns=("MUNICCSV", "MUNICIPIOS"),
    indexes=("nome", "uf"),
    reference=True,
)
