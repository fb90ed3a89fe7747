"""Entity descriptors — one declarative schema per CNPJ source file type."""

from ingestion.entities.base import Column, EntitySchema, FieldKind
from ingestion.entities.cnpj import EMPRESAS, ESTABELECIMENTOS, SIMPLES, SOCIOS
from ingestion.entities.reference import (
    CNAES,
    MOTIVOS,
    MUNICIPIOS,
    NATUREZAS,
    PAISES,
    QUALIFICACOES,
)

# Insertion order is processing order: lookups first, then companies before
# the files that reference them.
ENTITY_REGISTRY: dict[str, EntitySchema] = {
    schema.name: schema
    for schema in (
        CNAES,
        MOTIVOS,
        MUNICIPIOS,
        NATUREZAS,
        PAISES,
        QUALIFICACOES,
        EMPRESAS,
        ESTABELECIMENTOS,
        SIMPLES,
        SOCIOS,
    )
}


def get_schema(name: str) -> EntitySchema:
    """Look up a descriptor by registry name, raising ``KeyError`` with choices."""
    try:
        return ENTITY_REGISTRY[name]
    except KeyError:
        raise KeyError(
            f"Unknown entity {name!r}; expected one of {', '.join(ENTITY_REGISTRY)}"
        ) from None


__all__ = [
    "CNAES",
    "Column",
    "EMPRESAS",
    "ENTITY_REGISTRY",
    "ESTABELECIMENTOS",
    "EntitySchema",
    "FieldKind",
    "MOTIVOS",
    "MUNICIPIOS",
    "NATUREZAS",
    "PAISES",
    "QUALIFICACOES",
    "SIMPLES",
    "SOCIOS",
    "get_schema",
]
