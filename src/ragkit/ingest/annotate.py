"""Heuristic code annotation — chunkType / functionName from declaration keywords.

Best-effort regex matching, not a parser: results are approximate and meant
only as filterable metadata (``chunkType: function_definition`` etc.).
Annotators are plain callables ``(Chunk) -> Mapping`` so they can be swapped.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

from ragkit.models import Chunk

Annotator = Callable[[Chunk], Mapping[str, Any]]

CHUNK_TYPES = ("class_definition", "function_definition", "method_definition", "file")

_CLASS_RE = re.compile(r"export\s+(?:default\s+)?(?:abstract\s+)?class\s+(\w+)|^class\s+(\w+)", re.MULTILINE)
_FUNCTION_RE = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?function\s+(\w+)|^(?:async\s+)?def\s+(\w+)",
    re.MULTILINE,
)
_METHOD_RE = re.compile(
    r"(?:async\s+)?(\w+)\s*\([^)]*\)\s*(?::\s*[\w<>\[\], |]+)?\s*\{|^[ \t]+(?:async\s+)?def\s+(\w+)",
    re.MULTILINE,
)
_CLASS_CONTEXT_RE = re.compile(r"\bclass\s+(\w+)")

# Control-flow keywords that look like calls followed by a block.
_NOT_METHODS = frozenset(
    {"if", "for", "while", "switch", "catch", "function", "return", "constructor", "__init__"}
)


def chunk_type(text: str) -> str:
    """Classify *text* as class / function / method definition, or plain file content."""
    if _CLASS_RE.search(text):
        return "class_definition"
    if _FUNCTION_RE.search(text):
        return "function_definition"
    if _first_method(text) is not None:
        return "method_definition"
    return "file"


def function_name(text: str, source: str) -> str:
    """Best guess at the declared name in *text*; falls back to *source*."""
    if m := _CLASS_RE.search(text):
        return m.group(1) or m.group(2)
    if m := _FUNCTION_RE.search(text):
        return m.group(1) or m.group(2)
    if method := _first_method(text):
        if ctx := _CLASS_CONTEXT_RE.search(text):
            return f"{ctx.group(1)}.{method}"
        return method
    return source


def annotate_code(text: str, source: str) -> dict[str, str]:
    return {"chunkType": chunk_type(text), "functionName": function_name(text, source)}


def code_annotator(chunk: Chunk) -> dict[str, str]:
    """Default annotator for chunks of ``type: code`` documents."""
    return annotate_code(chunk.text, str(chunk.metadata.get("source", "")))


def _first_method(text: str) -> str | None:
    for m in _METHOD_RE.finditer(text):
        name = m.group(1) or m.group(2)
        if name not in _NOT_METHODS:
            return name
    return None
