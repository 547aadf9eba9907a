"""Domain models shared by the chunking, store and retrieval layers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


def _freeze(metadata: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(metadata or {}))


@dataclass(frozen=True)
class Document:
    """Raw source text plus open-ended metadata (source, type, section, format, ...).

    Immutable once created; ``metadata`` is a read-only view.
    """

    text: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))


@dataclass(frozen=True)
class Chunk:
    """A fragment of exactly one Document; the unit of embedding and retrieval."""

    text: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _freeze(self.metadata))

    @property
    def chunk_index(self) -> int:
        return int(self.metadata.get("chunkIndex", 0))

    def with_metadata(self, extra: Mapping[str, Any]) -> Chunk:
        """Return a new Chunk with *extra* merged over the current metadata."""
        return Chunk(text=self.text, metadata={**self.metadata, **extra})

    def record_metadata(self) -> dict[str, Any]:
        """Metadata as stored in the vector index: chunk metadata + raw ``text``."""
        return {**self.metadata, "text": self.text}


@dataclass
class QueryResult:
    """One vector store hit.

    Attributes:
        id: Record id inside the index.
        score: Cosine similarity (higher = closer).
        metadata: Stored metadata (includes ``text``).
    """

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return str(self.metadata.get("text", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "score": self.score, "metadata": self.metadata}


@dataclass
class RerankResult:
    """A reranked candidate with its combined score and per-component scores."""

    result: QueryResult
    score: float
    details: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.result.to_dict(),
            "score": self.score,
            "vectorScore": self.result.score,
            "details": self.details,
        }


def metadata_json(metadata: Mapping[str, Any]) -> str:
    """Serialise metadata for the store's JSON column."""
    return json.dumps(dict(metadata), ensure_ascii=False, sort_keys=True)
