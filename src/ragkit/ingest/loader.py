"""Load Documents from files with extension-driven ``format`` metadata."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from ragkit.errors import ConfigurationError
from ragkit.models import Document

_FORMATS: dict[str, str] = {
    ".md": "markdown",
    ".markdown": "markdown",
    ".json": "json",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".py": "python",
}

_CODE_FORMATS = frozenset({"typescript", "javascript", "python"})


def detect_format(path: Path | str) -> str:
    """Map a file extension to a ``format`` value (``text`` when unknown)."""
    return _FORMATS.get(Path(path).suffix.lower(), "text")


def default_type(fmt: str) -> str:
    """Default ``type`` metadata for a format: code, configuration or documentation."""
    if fmt in _CODE_FORMATS:
        return "code"
    if fmt == "json":
        return "configuration"
    return "documentation"


def load_document(
    path: Path | str, metadata: Mapping[str, Any] | None = None
) -> Document:
    """Read *path* whole (UTF-8) into a Document.

    Derived metadata: ``source`` (file name), ``format`` and ``type``.
    Keys in *metadata* override the derived ones.

    Raises:
        ConfigurationError: If *path* does not exist, is not a file, or is not
            valid UTF-8.
    """
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Document not found: '{p}'")
    fmt = detect_format(p)
    derived = {"source": p.name, "format": fmt, "type": default_type(fmt)}
    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"Document '{p}' is not UTF-8 text: {exc}", cause=exc) from exc
    return Document(
        text=text,
        metadata={**derived, **(metadata or {})},
    )
