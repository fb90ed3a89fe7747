"""Paginated search over the ingested CNPJ tables."""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ingestion.entities import ENTITY_REGISTRY
from ingestion.loaders.base import Store
from ingestion.parsers.normalizers import format_cnae

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

_SUMMARY_COLUMNS = (
    "e.cnpj_basico, e.razao_social, "
    "est.cnpj_basico || est.cnpj_ordem || est.cnpj_dv AS cnpj_completo, "
    "est.nome_fantasia, est.situacao_cadastral, est.cnae_principal, est.uf, "
    "est.municipio, est.logradouro, est.numero, est.complemento, est.bairro, "
    "est.cep, est.email, est.telefone1"
)


class BaseSchema(BaseModel):
    """Pydantic base schema with common configuration."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)


class PartnerSummary(BaseSchema):
    nome_socio: Optional[str] = None
    qualificacao_socio: Optional[str] = None
    cnpj_cpf_socio: Optional[str] = None


class CompanySummary(BaseSchema):
    """One establishment row joined with its company and partners."""

    cnpj_basico: str
    razao_social: Optional[str] = None
    cnpj_completo: str
    nome_fantasia: Optional[str] = None
    situacao_cadastral: Optional[str] = None
    cnae_principal: Optional[str] = None
    uf: Optional[str] = None
    municipio: Optional[str] = None
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    complemento: Optional[str] = None
    bairro: Optional[str] = None
    cep: Optional[str] = None
    email: Optional[str] = None
    telefone1: Optional[str] = None
    socios: list[PartnerSummary] = Field(default_factory=list)


class SearchPage(BaseSchema):
    total: int
    page: int
    limit: int
    items: list[CompanySummary] = Field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.total else 0


class CompanyDetail(BaseSchema):
    """Everything known about one 14-digit CNPJ."""

    empresa: dict[str, Any]
    estabelecimento: Optional[dict[str, Any]] = None
    socios: list[dict[str, Any]] = Field(default_factory=list)
    simples: Optional[dict[str, Any]] = None
    capital_social: Optional[Decimal] = None
    data_inicio_atividade: Optional[date] = None
    cnae_principal_formatado: Optional[str] = None
    cnae_descricao: Optional[str] = None
    natureza_juridica_descricao: Optional[str] = None


class CompanySearch:
    """Read-side queries over a store populated by the pipeline."""

    def __init__(self, store: Store) -> None:
        self.store = store
        self._p = store.placeholder
        self._like = "LIKE" if store.engine == "sqlite" else "ILIKE"

    def search(
        self,
        termo: Optional[str] = None,
        uf: Optional[str] = None,
        situacao: Optional[str] = None,
        cnae: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> SearchPage:
        """Search establishments by free text and filters, ordered by name.

        *termo* matches the full CNPJ, company name, trade name or any
        partner's name. *limit* is clamped to ``1..MAX_PAGE_SIZE``.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        p = self._p

        conditions: list[str] = []
        params: list[Any] = []
        if termo:
            conditions.append(
                f"(est.cnpj_basico || est.cnpj_ordem || est.cnpj_dv {self._like} {p} "
                f"OR e.razao_social {self._like} {p} "
                f"OR est.nome_fantasia {self._like} {p} "
                f"OR EXISTS (SELECT 1 FROM socios s WHERE s.cnpj_basico = e.cnpj_basico "
                f"AND s.nome_socio {self._like} {p}))"
            )
            params.extend([f"%{termo}%"] * 4)
        if uf:
            conditions.append(f"est.uf = {p}")
            params.append(uf)
        if situacao:
            conditions.append(f"est.situacao_cadastral = {p}")
            params.append(situacao)
        if cnae:
            conditions.append(f"est.cnae_principal = {p}")
            params.append(cnae)

        base = (
            f"SELECT {_SUMMARY_COLUMNS} FROM empresas e "
            "JOIN estabelecimentos est ON e.cnpj_basico = est.cnpj_basico"
        )
        if conditions:
            base += " WHERE " + " AND ".join(conditions)

        total = self.store.fetch_all(
            f"SELECT COUNT(*) AS total FROM ({base}) AS matches", params
        )[0]["total"]
        rows = self.store.fetch_all(
            f"{base} ORDER BY e.razao_social, cnpj_completo LIMIT {p} OFFSET {p}",
            [*params, limit, (page - 1) * limit],
        )

        items = []
        for row in rows:
            socios = self.store.fetch_all(
                "SELECT nome_socio, qualificacao_socio, cnpj_cpf_socio FROM socios "
                f"WHERE cnpj_basico = {p} ORDER BY nome_socio",
                [row["cnpj_basico"]],
            )
            items.append(CompanySummary(**row, socios=socios))

        logger.debug("Search %r page=%d matched %d rows", termo, page, total)
        return SearchPage(total=total, page=page, limit=limit, items=items)

    def get_by_cnpj(self, cnpj: str) -> Optional[CompanyDetail]:
        """Look up a 14-digit CNPJ (punctuation ignored).

        Returns ``None`` when the company does not exist.

        Raises:
            ValueError: if *cnpj* does not have 14 digits.
        """
        digits = re.sub(r"\D", "", cnpj)
        if len(digits) != 14:
            raise ValueError(f"Invalid CNPJ: {cnpj!r}")
        basico, ordem, dv = digits[:8], digits[8:12], digits[12:]
        p = self._p

        empresas = self.store.fetch_all(f"SELECT * FROM empresas WHERE cnpj_basico = {p}", [basico])
        if not empresas:
            return None
        empresa = empresas[0]

        estabelecimentos = self.store.fetch_all(
            f"SELECT * FROM estabelecimentos WHERE cnpj_basico = {p} "
            f"AND cnpj_ordem = {p} AND cnpj_dv = {p}",
            [basico, ordem, dv],
        )
        estabelecimento = estabelecimentos[0] if estabelecimentos else None
        socios = self.store.fetch_all(
            f"SELECT * FROM socios WHERE cnpj_basico = {p} ORDER BY nome_socio", [basico]
        )
        simples = self.store.fetch_all(f"SELECT * FROM simples WHERE cnpj_basico = {p}", [basico])

        cnae = estabelecimento.get("cnae_principal") if estabelecimento else None
        return CompanyDetail(
            empresa=empresa,
            estabelecimento=estabelecimento,
            socios=socios,
            simples=simples[0] if simples else None,
            capital_social=empresa.get("capital_social"),
            data_inicio_atividade=(
                estabelecimento.get("data_inicio_atividade") if estabelecimento else None
            ),
            cnae_principal_formatado=format_cnae(cnae),
            cnae_descricao=self._describe("cnaes", "descricao", cnae),
            natureza_juridica_descricao=self._describe(
                "naturezas_juridicas", "descricao", empresa.get("natureza_juridica")
            ),
        )

    def list_reference(self, name: str) -> list[dict[str, Any]]:
        """All rows of one lookup table, by registry name (e.g. ``"paises"``)."""
        schema = ENTITY_REGISTRY.get(name)
        if schema is None or not schema.reference:
            raise ValueError(f"Not a reference table: {name!r}")
        return self.store.fetch_all(f"SELECT * FROM {schema.table} ORDER BY codigo")

    def _describe(self, table: str, column: str, code: Optional[str]) -> Optional[str]:
        if not code:
            return None
        rows = self.store.fetch_all(
            f"SELECT {column} FROM {table} WHERE codigo = {self._p}", [code]
        )
        return rows[0][column] if rows else None
