"""Tests for the markdown chunking strategy."""

from __future__ import annotations

import pytest

from ragkit.errors import ConfigurationError
from ragkit.ingest.base import MarkdownConfig
from ragkit.ingest.chunker import chunk
from ragkit.models import Document

_HEADERS = (("#", "Header 1"), ("##", "Header 2"))

_GUIDE = """\
# A
Intro to A.

## B
Body of B.

## C
Body of C.
"""


def test_markdown_one_chunk_per_heading_section():
    chunks = chunk(Document(_GUIDE), MarkdownConfig(headers=_HEADERS))
    assert len(chunks) >= 3
    by_text = {c.text.splitlines()[0]: c.metadata for c in chunks}
    assert by_text["# A"]["Header 1"] == "A"
    assert "Header 2" not in by_text["# A"]
    assert by_text["## B"]["Header 1"] == "A"
    assert by_text["## B"]["Header 2"] == "B"
    assert by_text["## C"]["Header 1"] == "A"
    assert by_text["## C"]["Header 2"] == "C"


def test_markdown_heading_path():
    chunks = chunk(Document(_GUIDE), MarkdownConfig(headers=_HEADERS))
    assert [c.metadata["headingPath"] for c in chunks] == ["A", "A > B", "A > C"]


def test_markdown_new_top_level_heading_resets_subheadings():
    text = "# A\n## B\nb\n# D\nd\n"
    chunks = chunk(Document(text), MarkdownConfig(headers=_HEADERS))
    last = chunks[-1]
    assert last.metadata["Header 1"] == "D"
    assert "Header 2" not in last.metadata


def test_markdown_preamble_has_no_heading_keys():
    text = "Preamble text.\n\n# A\nbody\n"
    chunks = chunk(Document(text), MarkdownConfig(headers=_HEADERS))
    assert chunks[0].text == "Preamble text."
    assert "Header 1" not in chunks[0].metadata
    assert chunks[0].metadata["headingPath"] == ""


def test_markdown_ignores_headings_inside_code_fences():
    text = "# Title\n```bash\n# not a heading\n```\nafter\n"
    chunks = chunk(Document(text), MarkdownConfig(headers=_HEADERS))
    assert len(chunks) == 1
    assert "# not a heading" in chunks[0].text


def test_markdown_hashtag_without_space_is_not_heading():
    text = "# Title\n#hashtag line\n"
    chunks = chunk(Document(text), MarkdownConfig(headers=_HEADERS))
    assert len(chunks) == 1


def test_markdown_strip_headers_keeps_metadata():
    chunks = chunk(
        Document("# A\nbody text\n"), MarkdownConfig(headers=_HEADERS, strip_headers=True)
    )
    assert chunks[0].text == "body text"
    assert chunks[0].metadata["Header 1"] == "A"


def test_markdown_large_section_split_with_provenance():
    body = "\n\n".join(f"Paragraph {i} " + "words " * 10 for i in range(8))
    text = f"# Big\n## Part\n{body}\n"
    config = MarkdownConfig(headers=_HEADERS, max_size=120, min_size=20, overlap=10)
    chunks = [
        c for c in chunk(Document(text), config) if c.metadata["headingPath"] == "Big > Part"
    ]

    assert len(chunks) > 1
    assert all(len(c.text) <= 120 for c in chunks)
    assert all(c.metadata["Header 2"] == "Part" for c in chunks)
    assert [c.metadata["sectionPart"] for c in chunks] == list(range(len(chunks)))


def test_markdown_whitespace_only_is_single_chunk():
    chunks = chunk(Document("  \n\n  "), MarkdownConfig(headers=_HEADERS))
    assert len(chunks) == 1


def test_markdown_document_metadata_carried():
    doc = Document(_GUIDE, {"source": "guide.md", "section": "intro"})
    chunks = chunk(doc, MarkdownConfig(headers=_HEADERS))
    assert all(c.metadata["source"] == "guide.md" for c in chunks)
    assert all(c.metadata["strategy"] == "markdown" for c in chunks)


@pytest.mark.parametrize(
    "config",
    [
        MarkdownConfig(headers=()),
        MarkdownConfig(headers=_HEADERS, max_size=0),
        MarkdownConfig(headers=_HEADERS, max_size=50, overlap=50),
        MarkdownConfig(headers=_HEADERS, max_size=50, min_size=60),
    ],
)
def test_markdown_invalid_config_raises(config):
    with pytest.raises(ConfigurationError):
        chunk(Document(_GUIDE), config)
