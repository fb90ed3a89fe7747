"""Bulk ingestion of Receita Federal CNPJ open data.

Streams ``;``-delimited Latin-1 extracts through one generic pipeline
(parse, batch, upsert, commit/checkpoint) driven by per-entity descriptors.
"""

from ingestion.batching import BatchAccumulator, iter_batches
from ingestion.entities import ENTITY_REGISTRY, EntitySchema, get_schema
from ingestion.pipeline import IngestionError, IngestResult, PipelineDriver, ingest_file
from ingestion.transactions import TransactionController, TransactionStateError, TxState

__all__ = [
    "BatchAccumulator",
    "ENTITY_REGISTRY",
    "EntitySchema",
    "IngestResult",
    "IngestionError",
    "PipelineDriver",
    "TransactionController",
    "TransactionStateError",
    "TxState",
    "get_schema",
    "ingest_file",
    "iter_batches",
]
