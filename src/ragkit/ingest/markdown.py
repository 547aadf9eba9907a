"""Markdown chunker — heading-aware sections with heading-path metadata.

Strategy:
- Headings are recognised from the configured ``(marker, key)`` pairs, longest
  marker first, and never inside fenced code blocks.
- Each heading + its following content is a *section*; content before the
  first heading (preamble) is its own section without heading keys.
- Every chunk carries the active heading of each level under its configured
  key plus ``headingPath`` (``"User Guide > Installation"``).
- Sections longer than ``max_size`` are sub-split with the recursive
  partitioner; small pieces are merged up to ``min_size`` and ``overlap``
  characters of context are carried between pieces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ragkit.ingest.base import MarkdownConfig
from ragkit.ingest.recursive import DEFAULT_SEPARATORS, apply_overlap, merge_small, partition
from ragkit.models import Document

_FENCES = ("```", "~~~")


@dataclass
class _Section:
    heading: str | None
    lines: list[str] = field(default_factory=list)
    headings: dict[str, str] = field(default_factory=dict)
    path: list[str] = field(default_factory=list)


def split_markdown(
    document: Document, config: MarkdownConfig
) -> list[tuple[str, dict[str, Any]]]:
    pieces: list[tuple[str, dict[str, Any]]] = []
    for section in _sections(document.text, config):
        lines = section.lines
        if config.strip_headers and section.heading is not None:
            lines = lines[1:]
        body = "\n".join(lines).strip()
        if not body:
            continue

        meta: dict[str, Any] = dict(section.headings)
        meta["headingPath"] = " > ".join(section.path)

        if config.max_size is None or len(body) <= config.max_size:
            pieces.append((body, meta))
            continue

        budget = config.max_size - config.overlap
        segments = merge_small(
            partition(body, DEFAULT_SEPARATORS, budget), config.min_size, budget
        )
        for part, (text, _) in enumerate(apply_overlap(body, segments, config.overlap)):
            pieces.append((text, {**meta, "sectionPart": part}))

    if not pieces and document.text:
        # Whitespace-only input: keep it as one chunk rather than returning none.
        pieces.append((document.text, {"headingPath": ""}))
    return pieces


def _sections(text: str, config: MarkdownConfig) -> list[_Section]:
    """Group lines into heading sections, tracking the active heading stack."""
    markers = sorted(
        ((marker, key, i) for i, (marker, key) in enumerate(config.headers)),
        key=lambda m: len(m[0]),
        reverse=True,
    )
    # (level, key, title); level is the header's position in the config list.
    stack: list[tuple[int, str, str]] = []
    sections: list[_Section] = [_Section(heading=None)]
    fence: str | None = None

    for line in text.split("\n"):
        stripped = line.strip()

        if fence is None:
            opener = next((f for f in _FENCES if stripped.startswith(f)), None)
            if opener is not None:
                fence = opener
                sections[-1].lines.append(line)
                continue
        else:
            if stripped.startswith(fence):
                fence = None
            sections[-1].lines.append(line)
            continue

        header = _match_header(stripped, markers)
        if header is None:
            sections[-1].lines.append(line)
            continue

        level, key, title = header
        while stack and stack[-1][0] >= level:
            stack.pop()
        stack.append((level, key, title))
        sections.append(
            _Section(
                heading=line,
                lines=[line],
                headings={k: t for _, k, t in stack},
                path=[t for _, _, t in stack],
            )
        )

    return sections


def _match_header(
    stripped: str, markers: list[tuple[str, str, int]]
) -> tuple[int, str, str] | None:
    for marker, key, level in markers:
        if not stripped.startswith(marker):
            continue
        rest = stripped[len(marker) :]
        if rest == "" or rest.startswith(" "):
            return level, key, rest.strip()
    return None
