"""Loaders — store handles and the upsert writer."""

from ingestion.loaders.base import RowRejectedError, Store, StoreError
from ingestion.loaders.factory import ENGINES, open_store
from ingestion.loaders.sqlite_store import SqliteStore
from ingestion.loaders.writer import RejectedRow, UpsertWriter, WriteResult

__all__ = [
    "ENGINES",
    "RejectedRow",
    "RowRejectedError",
    "SqliteStore",
    "Store",
    "StoreError",
    "UpsertWriter",
    "WriteResult",
    "open_store",
]
