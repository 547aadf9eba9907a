"""Named-index vector store over SQLite + sqlite-vec.

Single interface for index lifecycle, upsert and filtered similarity query.
Vectors are stored as float32 blobs; ``query`` restricts the candidate set
with the compiled metadata filter first and then ranks the remainder by
cosine similarity (``score = 1 - vec_distance_cosine``), best first.

``recreate_index`` (delete + create) is not atomic: a concurrent query on
another connection may briefly see a missing or empty index.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ragkit.db.filters import Filter, compile_filter
from ragkit.errors import ConfigurationError, DimensionMismatchError, IndexNotFoundError
from ragkit.models import QueryResult, metadata_json

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    name: str
    dimension: int
    count: int


class VectorStore:
    """Data access layer for named vector indexes.

    Wraps an open sqlite3.Connection (sqlite-vec loaded, schema initialised
    — see ragkit.db.connection.Database). The connection is owned by the
    caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Index lifecycle
    # ------------------------------------------------------------------

    def create_index(self, name: str, dimension: int) -> None:
        """Create index *name* with vector *dimension*.

        Re-creating an existing index with the same dimension is a no-op.

        Raises:
            ConfigurationError: Empty name or dimension < 1.
            DimensionMismatchError: *name* exists with a different dimension.
        """
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError("Index name must be a non-empty string")
        if not isinstance(dimension, int) or isinstance(dimension, bool) or dimension < 1:
            raise ConfigurationError(f"dimension must be an integer >= 1, got {dimension!r}")

        existing = self._lookup_dimension(name)
        if existing is not None:
            if existing != dimension:
                raise DimensionMismatchError(
                    f"Index '{name}' already exists with dimension {existing}, "
                    f"requested {dimension}. Delete it first to change dimension.",
                    expected=existing,
                    actual=dimension,
                )
            return

        with self._conn:
            self._conn.execute(
                "INSERT INTO vector_indexes (name, dimension) VALUES (?, ?)",
                (name, dimension),
            )
        logger.info("Created index '%s' (dimension %d)", name, dimension)

    def delete_index(self, name: str) -> None:
        """Delete index *name* and all its records. No error if it does not exist."""
        with self._conn:
            self._conn.execute("DELETE FROM records WHERE index_name = ?", (name,))
            cur = self._conn.execute("DELETE FROM vector_indexes WHERE name = ?", (name,))
        if cur.rowcount:
            logger.info("Deleted index '%s'", name)

    def recreate_index(self, name: str, dimension: int) -> None:
        """Delete then create *name*. Not atomic with respect to other connections."""
        self.delete_index(name)
        self.create_index(name, dimension)

    def list_indexes(self) -> list[str]:
        rows = self._conn.execute("SELECT name FROM vector_indexes ORDER BY name").fetchall()
        return [r["name"] for r in rows]

    def describe_index(self, name: str) -> IndexStats:
        """Return name, dimension and record count for *name*.

        Raises:
            IndexNotFoundError: If *name* does not exist.
        """
        dimension = self._dimension(name)
        count = self._conn.execute(
            "SELECT COUNT(*) FROM records WHERE index_name = ?", (name,)
        ).fetchone()[0]
        return IndexStats(name=name, dimension=dimension, count=count)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def upsert(
        self,
        name: str,
        vectors: Sequence[Sequence[float]],
        metadata: Sequence[Mapping[str, Any]],
        ids: Sequence[str] | None = None,
    ) -> list[str]:
        """Insert or replace records; position *i* of each list forms one record.

        Args:
            name: Target index.
            vectors: Embeddings, each of the index's dimension.
            metadata: One metadata mapping per vector.
            ids: Optional record ids; an existing id is replaced. Generated when omitted.

        Returns:
            The record ids, in input order.

        Raises:
            IndexNotFoundError: *name* does not exist.
            ConfigurationError: List lengths differ.
            DimensionMismatchError: Any vector has the wrong length (nothing is written).
        """
        dimension = self._dimension(name)
        if len(vectors) != len(metadata):
            raise ConfigurationError(
                f"upsert needs one metadata entry per vector "
                f"(got {len(vectors)} vectors, {len(metadata)} metadata)"
            )
        if ids is not None and len(ids) != len(vectors):
            raise ConfigurationError(
                f"upsert got {len(ids)} ids for {len(vectors)} vectors"
            )
        for i, vector in enumerate(vectors):
            _check_dimension(name, dimension, vector, f"vector {i}")

        record_ids = [str(i) for i in ids] if ids is not None else [
            str(uuid.uuid4()) for _ in vectors
        ]
        rows = [
            (name, rid, json.dumps([float(x) for x in vector]), metadata_json(meta))
            for rid, vector, meta in zip(record_ids, vectors, metadata)
        ]
        with self._conn:
            self._conn.executemany(
                """
                INSERT INTO records (index_name, id, embedding, metadata)
                VALUES (?, ?, vec_f32(?), ?)
                ON CONFLICT(index_name, id) DO UPDATE SET
                    embedding = excluded.embedding,
                    metadata = excluded.metadata
                """,
                rows,
            )
        logger.debug("Upserted %d records into '%s'", len(rows), name)
        return record_ids

    def query(
        self,
        name: str,
        vector: Sequence[float],
        top_k: int = 10,
        filter: Filter | None = None,
    ) -> list[QueryResult]:
        """Nearest records to *vector* among those matching *filter*, best first.

        Raises:
            IndexNotFoundError: *name* does not exist.
            DimensionMismatchError: *vector* has the wrong length.
            ConfigurationError: top_k < 1.
            FilterError: Malformed filter.
        """
        if not isinstance(top_k, int) or isinstance(top_k, bool) or top_k < 1:
            raise ConfigurationError(f"top_k must be an integer >= 1, got {top_k!r}")
        dimension = self._dimension(name)
        _check_dimension(name, dimension, vector, "query vector")

        where, params = compile_filter(filter)
        rows = self._conn.execute(
            f"""
            SELECT id, metadata, vec_distance_cosine(embedding, vec_f32(?)) AS distance
            FROM records
            WHERE index_name = ? AND {where}
            ORDER BY distance, rowid
            LIMIT ?
            """,  # noqa: S608
            [json.dumps([float(x) for x in vector]), name, *params, top_k],
        ).fetchall()

        return [
            QueryResult(
                id=row["id"],
                score=1.0 - float(row["distance"]),
                metadata=json.loads(row["metadata"]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lookup_dimension(self, name: str) -> int | None:
        row = self._conn.execute(
            "SELECT dimension FROM vector_indexes WHERE name = ?", (name,)
        ).fetchone()
        return row["dimension"] if row else None

    def _dimension(self, name: str) -> int:
        dimension = self._lookup_dimension(name)
        if dimension is None:
            raise IndexNotFoundError(name)
        return dimension


def _check_dimension(
    name: str, expected: int, vector: Sequence[float], label: str
) -> None:
    if len(vector) != expected:
        raise DimensionMismatchError(
            f"Dimension mismatch for index '{name}': {label} has length "
            f"{len(vector)}, index expects {expected}.",
            expected=expected,
            actual=len(vector),
        )
