"""Tests for chunker config parsing and strategy dispatch."""

from __future__ import annotations

import pytest

from ragkit.errors import ConfigurationError
from ragkit.ingest.base import (
    CharacterConfig,
    JsonConfig,
    MarkdownConfig,
    RecursiveConfig,
    config_from_dict,
    count_tokens,
)
from ragkit.ingest.chunker import chunk, chunk_documents
from ragkit.models import Document


def test_config_from_dict_builds_each_variant():
    assert config_from_dict({"strategy": "character", "size": 10}) == CharacterConfig(size=10)
    assert config_from_dict({"strategy": "recursive", "size": 10, "overlap": 2}) == (
        RecursiveConfig(size=10, overlap=2)
    )
    assert config_from_dict({"strategy": "json", "max_size": 50}) == JsonConfig(max_size=50)


def test_config_from_dict_accepts_camel_case():
    config = config_from_dict(
        {
            "strategy": "markdown",
            "headers": [["#", "Header 1"]],
            "maxSize": 100,
            "minSize": 10,
            "stripHeaders": True,
        }
    )
    assert config == MarkdownConfig(
        headers=(("#", "Header 1"),), max_size=100, min_size=10, strip_headers=True
    )


def test_config_from_dict_separators_become_tuple():
    config = config_from_dict({"strategy": "recursive", "size": 10, "separators": ["\n", ""]})
    assert config.separators == ("\n", "")


@pytest.mark.parametrize(
    "raw",
    [
        {"strategy": "semantic", "size": 10},
        {"size": 10},
        {"strategy": "character", "size": 10, "max_size": 5},
        {"strategy": "character"},
        {"strategy": "json"},
        {"strategy": "character", "size": 10, "overlap": 10},
        {"strategy": "json", "max_size": 100, "min_size": "ten"},
        {"strategy": "markdown", "overlap": "5"},
        {"strategy": "markdown", "headers": 5},
        {"strategy": "recursive", "size": 10, "separators": 3},
    ],
)
def test_config_from_dict_rejects_bad_input(raw):
    with pytest.raises(ConfigurationError):
        config_from_dict(raw)


def test_chunk_rejects_unknown_config_type():
    with pytest.raises(ConfigurationError, match="Unsupported"):
        chunk(Document("abc"), {"strategy": "character", "size": 2})  # type: ignore[arg-type]


def test_chunk_documents_preserves_document_order():
    docs = [Document("aaaa", {"source": "a"}), Document("bbbb", {"source": "b"})]
    chunks = chunk_documents(docs, CharacterConfig(size=2))
    assert [c.metadata["source"] for c in chunks] == ["a", "a", "b", "b"]
    assert [c.chunk_index for c in chunks] == [0, 1, 0, 1]


def test_chunk_metadata_is_read_only():
    chunks = chunk(Document("abcd", {"source": "a"}), CharacterConfig(size=2))
    with pytest.raises(TypeError):
        chunks[0].metadata["source"] = "b"  # type: ignore[index]


def test_count_tokens_approximation():
    assert count_tokens("") == 1
    assert count_tokens("a" * 400) == 100
