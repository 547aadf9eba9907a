"""Character chunker — fixed window with overlap."""

from __future__ import annotations

from typing import Any

from ragkit.ingest.base import CharacterConfig
from ragkit.models import Document


def split_character(
    document: Document, config: CharacterConfig
) -> list[tuple[str, dict[str, Any]]]:
    """Slide a window of ``config.size`` characters over the text.

    The window advances by ``size - overlap``; the last window may be shorter.
    Windows are never stripped, so dropping the trailing ``overlap`` characters
    of every window but the last and concatenating yields the source text.
    """
    text = document.text
    step = config.size - config.overlap
    length = len(text)

    pieces: list[tuple[str, dict[str, Any]]] = []
    pos = 0
    while True:
        end = min(pos + config.size, length)
        pieces.append((text[pos:end], {"startIndex": pos}))
        if end >= length:
            break
        pos += step
    return pieces
