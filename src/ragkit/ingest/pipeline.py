"""Ingest pipeline: Documents → Chunks → embeddings → vector index.

Order of work:
  1. Resolve and validate one chunker config per document.
  2. Chunk every document (per-document chunk order preserved).
  3. Annotate chunks (code heuristics for ``type: code`` documents by default).
  4. Embed each document's chunks with one ``embed_batch`` call per document.
  5. Create (or recreate, with ``rebuild``) the index at the embedding
     dimension and upsert every chunk, with its text duplicated into metadata.

Any failure in steps 1–4, including embeddings of mixed length, aborts before
the store is touched.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from ragkit.config import ChunkersCfg
from ragkit.db.store import VectorStore
from ragkit.errors import DimensionMismatchError
from ragkit.ingest.annotate import Annotator, code_annotator
from ragkit.ingest.base import ChunkerConfig
from ragkit.ingest.chunker import chunk
from ragkit.models import Chunk, Document
from ragkit.rag.llm_client import Embedder

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    """Summary of one ingest run."""

    index_name: str
    documents: int = 0
    chunks: int = 0
    by_format: dict[str, int] = field(default_factory=dict)
    record_ids: list[str] = field(default_factory=list)


def ingest_documents(
    documents: Sequence[Document],
    store: VectorStore,
    embedder: Embedder,
    index_name: str,
    *,
    config: ChunkerConfig | None = None,
    chunkers: ChunkersCfg | None = None,
    rebuild: bool = False,
    annotators: Sequence[Annotator] | None = None,
) -> IngestReport:
    """Chunk, embed and upsert *documents* into *index_name*.

    Args:
        documents: Documents to ingest.
        store: Open VectorStore.
        embedder: Embedding client.
        index_name: Target index; created at the embedding dimension if missing.
        config: One chunker config for every document. When ``None`` each
            document gets ``chunkers.for_format(metadata["format"])``.
        chunkers: Per-strategy defaults (``ChunkersCfg()`` when omitted).
        rebuild: Delete and recreate the index before upserting.
        annotators: Applied to every chunk. When ``None``, code documents
            (``type: code``) get the heuristic code annotator.

    Returns:
        IngestReport with chunk counts per format and the new record ids.
    """
    chunkers = chunkers or ChunkersCfg()
    configs = [
        config if config is not None else chunkers.for_format(doc.metadata.get("format"))
        for doc in documents
    ]
    for cfg in configs:
        cfg.validate()

    per_doc: list[list[Chunk]] = [
        _annotate(doc, chunk(doc, cfg), annotators) for doc, cfg in zip(documents, configs)
    ]
    report = IngestReport(index_name=index_name, documents=len(documents))

    vectors: list[list[float]] = []
    all_chunks: list[Chunk] = []
    for doc_chunks in per_doc:
        if not doc_chunks:
            continue
        vectors.extend(embedder.embed_batch([c.text for c in doc_chunks]))
        all_chunks.extend(doc_chunks)

    if not all_chunks:
        logger.warning("No chunks produced for index '%s'; nothing to upsert", index_name)
        return report

    dimension = len(vectors[0])
    for i, vector in enumerate(vectors):
        if len(vector) != dimension:
            raise DimensionMismatchError(
                f"Embedder returned vectors of mixed length for index '{index_name}': "
                f"vector {i} has length {len(vector)}, expected {dimension}.",
                expected=dimension,
                actual=len(vector),
            )
    if rebuild:
        store.recreate_index(index_name, dimension)
    else:
        store.create_index(index_name, dimension)

    report.record_ids = store.upsert(
        index_name, vectors, [c.record_metadata() for c in all_chunks]
    )
    report.chunks = len(all_chunks)
    report.by_format = dict(
        Counter(str(c.metadata.get("format", "unknown")) for c in all_chunks)
    )
    logger.info(
        "Ingested %d documents as %d chunks into '%s'",
        report.documents,
        report.chunks,
        index_name,
    )
    return report


def _annotate(
    document: Document, chunks: list[Chunk], annotators: Sequence[Annotator] | None
) -> list[Chunk]:
    if annotators is None:
        annotators = [code_annotator] if document.metadata.get("type") == "code" else []
    for annotator in annotators:
        chunks = [c.with_metadata(annotator(c)) for c in chunks]
    return chunks
