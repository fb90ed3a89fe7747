"""Descriptors for the four large Receita Federal CNPJ files.

Layouts follow the public "Metadados CNPJ" document: no header row, fields in
the order listed below, ``;`` separated and double-quoted.
"""

from __future__ import annotations

from ingestion.entities.base import Column, EntitySchema

EMPRESAS = EntitySchema(
    name="empresas",
    table="empresas",
    columns=(
        Column("cnpj_basico", nullable=False),
        Column("razao_social"),
        Column("natureza_juridica"),
        Column("qualificacao_responsavel"),
        Column("capital_social", "numeric"),
        Column("porte_empresa"),
        Column("ente_federativo"),
    ),
    key=("cnpj_basico",),
    min_fields=7,
    batch_size=20_000,
    file_patterns=("EMPRECSV", "EMPRESAS"),
    indexes=("razao_social",),
)

ESTABELECIMENTOS = EntitySchema(
    name="estabelecimentos",
    table="estabelecimentos",
    columns=(
        Column("cnpj_basico", nullable=False),
        Column("cnpj_ordem", nullable=False),
        Column("cnpj_dv", nullable=False),
        Column("identificador_matriz_filial"),
        Column("nome_fantasia"),
        Column("situacao_cadastral"),
        Column("data_situacao_cadastral", "date"),
        Column("motivo_situacao_cadastral"),
        Column("cidade_exterior"),
        Column("pais"),
        Column("data_inicio_atividade", "date"),
        Column("cnae_principal"),
        Column("cnaes_secundarios"),
        Column("tipo_logradouro"),
        Column("logradouro"),
        Column("numero"),
        Column("complemento"),
        Column("bairro"),
        Column("cep"),
        Column("uf"),
        Column("municipio"),
        Column("ddd1"),
        Column("telefone1"),
        Column("ddd2"),
        Column("telefone2"),
        Column("ddd_fax"),
        Column("fax"),
        Column("email"),
        Column("situacao_especial"),
        Column("data_situacao_especial", "date"),
    ),
    key=("cnpj_basico", "cnpj_ordem", "cnpj_dv"),
    min_fields=30,
    batch_size=50_000,
    file_patterns=("ESTABELE", "ESTABELECIMENTOS"),
    indexes=("situacao_cadastral", "uf", "municipio", "cnae_principal"),
)

# Partner CPFs are masked (***123456**), so the tax id alone collides
# between partners of the same company; the name disambiguates.
SOCIOS = EntitySchema(
    name="socios",
    table="socios",
    columns=(
        Column("cnpj_basico", nullable=False),
        Column("identificador_socio", nullable=False),
        Column("nome_socio", nullable=False),
        Column("cnpj_cpf_socio", nullable=False),
        Column("qualificacao_socio"),
        Column("data_entrada_sociedade", "date"),
        Column("pais"),
        Column("representante_legal"),
        Column("nome_representante"),
        Column("qualificacao_representante"),
        Column("faixa_etaria"),
    ),
    key=("cnpj_basico", "cnpj_cpf_socio", "nome_socio"),
    min_fields=11,
    batch_size=50_000,
    file_patterns=("SOCIOCSV", "SOCIOS"),
    indexes=("nome_socio", "qualificacao_socio"),
)

SIMPLES = EntitySchema(
    name="simples",
    table="simples",
    columns=(
        Column("cnpj_basico", nullable=False),
        Column("opcao_simples", "flag", nullable=False),
        Column("data_opcao_simples", "date"),
        Column("data_exclusao_simples", "date"),
        Column("opcao_mei", "flag", nullable=False),
        Column("data_opcao_mei", "date"),
        Column("data_exclusao_mei", "date"),
    ),
    key=("cnpj_basico",),
    min_fields=7,
    batch_size=50_000,
    file_patterns=("SIMPLES",),
    indexes=("opcao_simples", "opcao_mei"),
)
