"""Recursive chunker — separator-priority splits with a character fallback.

Text is partitioned into contiguous segments of at most ``size - overlap``
characters, trying each separator in priority order (paragraph, line,
sentence, word, character). Source code gets declaration keywords first so
functions and classes stay whole where they fit. Separators stay attached to
the start of the following segment, so segments concatenate back to the
source exactly; overlap is then added as a prefix taken from the text that
precedes each segment.
"""

from __future__ import annotations

from typing import Any, Sequence

from ragkit.ingest.base import RecursiveConfig
from ragkit.models import Document

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")

_TS_SEPARATORS: tuple[str, ...] = (
    "\nexport class ",
    "\nclass ",
    "\nexport interface ",
    "\ninterface ",
    "\nexport async function ",
    "\nexport function ",
    "\nasync function ",
    "\nfunction ",
    "\nexport const ",
    "\nconst ",
    "\nexport type ",
    "\ntype ",
    "\nenum ",
    "\n\n",
    "\n",
    " ",
    "",
)

_JS_SEPARATORS: tuple[str, ...] = (
    "\nexport class ",
    "\nclass ",
    "\nexport async function ",
    "\nexport function ",
    "\nasync function ",
    "\nfunction ",
    "\nexport const ",
    "\nconst ",
    "\nlet ",
    "\n\n",
    "\n",
    " ",
    "",
)

_PY_SEPARATORS: tuple[str, ...] = (
    "\nclass ",
    "\nasync def ",
    "\ndef ",
    "\n    async def ",
    "\n    def ",
    "\n\tdef ",
    "\n\n",
    "\n",
    " ",
    "",
)

LANGUAGE_SEPARATORS: dict[str, tuple[str, ...]] = {
    "typescript": _TS_SEPARATORS,
    "javascript": _JS_SEPARATORS,
    "python": _PY_SEPARATORS,
}


def separators_for(config: RecursiveConfig, document: Document) -> Sequence[str]:
    """Pick the separator list: explicit > config language > document format > prose."""
    if config.separators is not None:
        return config.separators
    language = config.language or document.metadata.get("format")
    return LANGUAGE_SEPARATORS.get(str(language or "").lower(), DEFAULT_SEPARATORS)


def split_recursive(
    document: Document, config: RecursiveConfig
) -> list[tuple[str, dict[str, Any]]]:
    text = document.text
    budget = config.size - config.overlap
    segments = partition(text, separators_for(config, document), budget)
    return [
        (piece, {"startIndex": start})
        for piece, start in apply_overlap(text, segments, config.overlap)
    ]


def partition(text: str, separators: Sequence[str], budget: int) -> list[str]:
    """Split *text* into contiguous segments of at most *budget* characters.

    ``"".join(partition(text, ...)) == text`` always holds.
    """
    if len(text) <= budget:
        return [text]

    for i, sep in enumerate(separators):
        if sep == "":
            break
        if sep in text:
            remaining = separators[i + 1 :]
            break
    else:
        sep = ""

    if sep == "":
        return [text[pos : pos + budget] for pos in range(0, len(text), budget)]

    segments: list[str] = []
    current = ""
    for part in _split_keep_start(text, sep):
        if len(part) > budget:
            if current:
                segments.append(current)
                current = ""
            segments.extend(partition(part, remaining, budget))
        elif len(current) + len(part) <= budget:
            current += part
        else:
            segments.append(current)
            current = part
    if current:
        segments.append(current)
    return segments


def merge_small(segments: list[str], min_size: int, budget: int) -> list[str]:
    """Merge segments shorter than *min_size* into a neighbour when it fits."""
    if min_size <= 0:
        return list(segments)
    merged: list[str] = []
    for seg in segments:
        if (
            merged
            and (len(merged[-1]) < min_size or len(seg) < min_size)
            and len(merged[-1]) + len(seg) <= budget
        ):
            merged[-1] += seg
        else:
            merged.append(seg)
    return merged


def apply_overlap(
    text: str, segments: list[str], overlap: int
) -> list[tuple[str, int]]:
    """Prefix each segment after the first with up to *overlap* preceding characters.

    Returns ``(chunk_text, start_offset)`` pairs; *segments* must partition *text*.
    """
    pieces: list[tuple[str, int]] = []
    pos = 0
    for seg in segments:
        start = max(0, pos - overlap) if pieces else pos
        end = pos + len(seg)
        pieces.append((text[start:end], start))
        pos = end
    return pieces


def _split_keep_start(text: str, sep: str) -> list[str]:
    """Split on *sep*, keeping each separator at the start of the following part."""
    parts: list[str] = []
    start = 0
    search = 0
    while True:
        idx = text.find(sep, search)
        if idx == -1:
            break
        if idx > start:
            parts.append(text[start:idx])
            start = idx
        search = idx + len(sep)
    parts.append(text[start:])
    return parts
