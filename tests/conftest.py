"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from ragkit.db.connection import Database
from ragkit.db.store import VectorStore


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".ragkit.db")
    conn = db.connect()
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_db):
    """VectorStore over the tmp_db connection."""
    return VectorStore(tmp_db)


class FakeEmbedder:
    """Deterministic embedder: looks texts up in *table*, else a fallback vector."""

    def __init__(self, table: dict[str, list[float]] | None = None, dimension: int = 3) -> None:
        self.table = table or {}
        self.dimension = dimension
        self.calls: list[list[str]] = []

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts):
        self.calls.append(list(texts))
        return [self.table.get(t, self._fallback(t)) for t in texts]

    def _fallback(self, text: str) -> list[float]:
        seed = sum(ord(ch) for ch in text) or 1
        return [float((seed * (i + 1)) % 7 + 1) for i in range(self.dimension)]


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()
