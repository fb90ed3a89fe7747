"""Test helpers: raw Receita Federal line builders and a scripted fake store."""

from __future__ import annotations

from io import BytesIO
from typing import Sequence

from ingestion.entities import EntitySchema
from ingestion.loaders.base import RowRejectedError, Store
from ingestion.parsers.stream import SOURCE_ENCODING


def quoted(*fields: str) -> str:
    return ";".join(f'"{f}"' for f in fields)


def empresa_line(
    cnpj_basico: str,
    razao_social: str = "EMPRESA TESTE LTDA",
    capital_social: str = "1000,00",
    natureza: str = "2062",
) -> str:
    return quoted(cnpj_basico, razao_social, natureza, "49", capital_social, "01", "")


def estabelecimento_line(
    cnpj_basico: str,
    ordem: str = "0001",
    dv: str = "91",
    nome_fantasia: str = "LOJA TESTE",
    situacao: str = "02",
    uf: str = "SP",
    cnae: str = "4711302",
    data_inicio: str = "20150310",
) -> str:
    fields = [
        cnpj_basico, ordem, dv, "1", nome_fantasia, situacao, "20150310", "00", "",
        "", data_inicio, cnae, "4712100,5611201", "RUA", "DAS FLORES", "100", "SALA 2",
        "CENTRO", "01001000", uf, "7107", "11", "33334444", "", "", "", "",
        "contato@teste.com.br", "", "",
    ]
    return quoted(*fields)


def socio_line(
    cnpj_basico: str,
    nome: str = "FULANO DE TAL",
    cpf: str = "***123456**",
    qualificacao: str = "49",
    data_entrada: str = "20150310",
) -> str:
    return quoted(
        cnpj_basico, "2", nome, cpf, qualificacao, data_entrada, "", "***000000**", "", "00", "5"
    )


def simples_line(
    cnpj_basico: str,
    opcao_simples: str = "S",
    opcao_mei: str = "N",
    data_opcao: str = "20180101",
) -> str:
    return quoted(cnpj_basico, opcao_simples, data_opcao, "00000000", opcao_mei, "", "")


def to_stream(*lines: str, trailing_newline: bool = True) -> BytesIO:
    text = "\n".join(lines) + ("\n" if trailing_newline else "")
    return BytesIO(text.encode(SOURCE_ENCODING))


class FakeStore(Store):
    """In-memory store that records every call and can fail on demand.

    Rows written inside a transaction only become visible in ``committed``
    once the transaction commits, mirroring a real store.
    """

    engine = "fake"

    def __init__(
        self,
        fail_on_batch: int | None = None,
        reject_keys: Sequence[tuple] = (),
        fail_on_checkpoint: bool = False,
    ) -> None:
        super().__init__(conn=None)
        self.fail_on_batch = fail_on_batch
        self.fail_on_checkpoint = fail_on_checkpoint
        self.reject_keys = set(reject_keys)
        self.calls: list[str] = []
        self.pending: list[tuple] = []
        self.committed: list[tuple] = []
        self.batches_attempted = 0
        self.in_transaction = False

    def begin(self) -> None:
        assert not self.in_transaction, "nested BEGIN"
        self.calls.append("begin")
        self.in_transaction = True

    def commit(self) -> None:
        self.calls.append("commit")
        self.committed.extend(self.pending)
        self.pending = []
        self.in_transaction = False

    def rollback(self) -> None:
        assert self.in_transaction, "ROLLBACK without a transaction"
        self.calls.append("rollback")
        self.pending = []
        self.in_transaction = False

    def checkpoint(self) -> None:
        self.calls.append("checkpoint")
        if self.fail_on_checkpoint:
            raise OSError("disk full")

    def execute_batch(self, schema: EntitySchema, rows: Sequence[tuple]) -> int:
        assert self.in_transaction, "write outside a transaction"
        self.batches_attempted += 1
        self.calls.append("execute_batch")
        # Half of the batch lands before the failure, like a dropped connection.
        if self.batches_attempted == self.fail_on_batch:
            self.pending.extend(rows[: len(rows) // 2])
            raise ConnectionError("connection lost")
        self.pending.extend(rows)
        return len(rows)

    def execute_row(self, schema: EntitySchema, row: tuple) -> None:
        assert self.in_transaction, "write outside a transaction"
        key = schema.key_of(row)
        if key in self.reject_keys:
            raise RowRejectedError(schema.table, key, "constraint failed")
        self.pending.append(row)

    def close(self) -> None:
        self.calls.append("close")


def count_rows(store: Store, table: str) -> int:
    return store.fetch_all(f"SELECT COUNT(*) AS n FROM {table}")[0]["n"]
