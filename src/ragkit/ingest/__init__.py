"""ragkit ingest — chunking strategies, code annotation, document loading.

The embedding/upsert pipeline lives in ``ragkit.ingest.pipeline``.
"""

from ragkit.ingest.annotate import annotate_code, code_annotator
from ragkit.ingest.base import (
    CharacterConfig,
    ChunkerConfig,
    JsonConfig,
    MarkdownConfig,
    RecursiveConfig,
    config_from_dict,
)
from ragkit.ingest.chunker import chunk, chunk_documents
from ragkit.ingest.loader import load_document

__all__ = [
    "CharacterConfig",
    "ChunkerConfig",
    "JsonConfig",
    "MarkdownConfig",
    "RecursiveConfig",
    "annotate_code",
    "chunk",
    "chunk_documents",
    "code_annotator",
    "config_from_dict",
    "load_document",
]
