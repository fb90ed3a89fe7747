"""Shared fixtures: temporary SQLite stores and a scripted fake store."""

from __future__ import annotations

import pytest

from factories import FakeStore
from ingestion.entities import ENTITY_REGISTRY
from ingestion.loaders.sqlite_store import SqliteStore


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """File-backed SQLite store in WAL mode with every CNPJ table created."""
    store = SqliteStore.connect(str(tmp_path / "cnpj.db"))
    store.create_schema(ENTITY_REGISTRY.values())
    yield store
    store.close()
