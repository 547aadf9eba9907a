"""Strategy dispatch — ``chunk(document, config)`` for every config variant."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from ragkit.errors import ConfigurationError
from ragkit.ingest.base import (
    CharacterConfig,
    ChunkerConfig,
    JsonConfig,
    MarkdownConfig,
    RecursiveConfig,
)
from ragkit.ingest.character import split_character
from ragkit.ingest.json_chunker import split_json
from ragkit.ingest.markdown import split_markdown
from ragkit.ingest.recursive import split_recursive
from ragkit.models import Chunk, Document

logger = logging.getLogger(__name__)

_Splitter = Callable[[Document, Any], list[tuple[str, dict[str, Any]]]]

_SPLITTERS: dict[type, _Splitter] = {
    CharacterConfig: split_character,
    RecursiveConfig: split_recursive,
    MarkdownConfig: split_markdown,
    JsonConfig: split_json,
}


def chunk(document: Document, config: ChunkerConfig) -> list[Chunk]:
    """Split *document* into ordered Chunks using *config*'s strategy.

    Chunk metadata = document metadata + ``strategy``, ``chunkIndex`` and the
    strategy's local fields. Deterministic for identical input.

    Raises:
        ConfigurationError: *config* is invalid (nothing is chunked).
        ChunkParseError: A structural strategy could not parse the text.
    """
    _validate(config)
    return _chunk(document, config)


def chunk_documents(
    documents: Iterable[Document], config: ChunkerConfig
) -> list[Chunk]:
    """Chunk several documents with one config; per-document order is preserved."""
    _validate(config)
    chunks: list[Chunk] = []
    for document in documents:
        chunks.extend(_chunk(document, config))
    return chunks


def _validate(config: ChunkerConfig) -> None:
    if type(config) not in _SPLITTERS:
        raise ConfigurationError(
            f"Unsupported chunker config type: {type(config).__name__}"
        )
    config.validate()


def _chunk(document: Document, config: ChunkerConfig) -> list[Chunk]:
    if not document.text:
        return []

    pieces = _SPLITTERS[type(config)](document, config)
    chunks = [
        Chunk(
            text=text,
            metadata={
                **document.metadata,
                **local,
                "strategy": config.strategy,
                "chunkIndex": i,
            },
        )
        for i, (text, local) in enumerate(pieces)
    ]
    logger.debug(
        "Chunked %s with %s strategy → %d chunks",
        document.metadata.get("source", "<document>"),
        config.strategy,
        len(chunks),
    )
    return chunks
