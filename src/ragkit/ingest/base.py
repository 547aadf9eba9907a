"""Chunking strategy configurations — one frozen dataclass per strategy.

The four strategies form a closed set. Each variant carries only the
parameters its strategy understands and validates them up front, so an
invalid configuration fails the whole chunking call before any chunk is
emitted.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Mapping, Union

from ragkit.errors import ConfigurationError


@dataclass(frozen=True)
class CharacterConfig:
    """Fixed window of *size* characters, advancing by ``size - overlap``."""

    strategy: ClassVar[str] = "character"

    size: int
    overlap: int = 0

    def validate(self) -> None:
        _check_size("size", self.size)
        _check_overlap(self.overlap, self.size, "size")


@dataclass(frozen=True)
class RecursiveConfig:
    """Separator-priority splitting with *overlap* characters of carried context.

    Attributes:
        size: Maximum chunk length in characters (overlap included).
        overlap: Characters of trailing context carried into the next chunk.
        separators: Explicit separator priority list. ``None`` picks one from
            *language* (or the document's ``format``) or the prose default.
        language: Force language-aware separators (typescript, javascript, python).
    """

    strategy: ClassVar[str] = "recursive"

    size: int
    overlap: int = 0
    separators: tuple[str, ...] | None = None
    language: str | None = None

    def validate(self) -> None:
        _check_size("size", self.size)
        _check_overlap(self.overlap, self.size, "size")
        if self.separators is not None:
            if not self.separators:
                raise ConfigurationError("separators must not be empty when given")
            if not all(isinstance(s, str) for s in self.separators):
                raise ConfigurationError("separators must be strings")


@dataclass(frozen=True)
class MarkdownConfig:
    """Heading-aware sections, optionally sub-split above *max_size*.

    Attributes:
        headers: Ordered ``(marker, metadata_key)`` pairs, e.g. ``("#", "Header 1")``.
        max_size: Sections longer than this are split further (``None`` = never).
        min_size: Sub-split pieces shorter than this are merged with a neighbour.
        overlap: Characters of carried context between sub-split pieces.
        strip_headers: Drop the heading line from chunk text (kept in metadata).
    """

    strategy: ClassVar[str] = "markdown"

    headers: tuple[tuple[str, str], ...] = (("#", "Header 1"), ("##", "Header 2"))
    max_size: int | None = None
    min_size: int = 0
    overlap: int = 0
    strip_headers: bool = False

    def validate(self) -> None:
        if not self.headers:
            raise ConfigurationError("markdown strategy requires at least one header")
        markers: set[str] = set()
        for pair in self.headers:
            if len(pair) != 2 or not all(isinstance(p, str) and p for p in pair):
                raise ConfigurationError(
                    f"Invalid header pair {pair!r} — expected (marker, metadata_key)"
                )
            if pair[0] in markers:
                raise ConfigurationError(f"Duplicate header marker {pair[0]!r}")
            markers.add(pair[0])
        _check_count("min_size", self.min_size)
        _check_count("overlap", self.overlap)
        if self.max_size is not None:
            _check_size("max_size", self.max_size)
            if self.min_size > self.max_size:
                raise ConfigurationError(
                    f"min_size ({self.min_size}) must be <= max_size ({self.max_size})"
                )
            _check_overlap(self.overlap, self.max_size, "max_size")


@dataclass(frozen=True)
class JsonConfig:
    """Structural JSON grouping between *min_size* and *max_size* characters."""

    strategy: ClassVar[str] = "json"

    max_size: int
    min_size: int = 0

    def validate(self) -> None:
        _check_size("max_size", self.max_size)
        _check_count("min_size", self.min_size)
        if self.min_size > self.max_size:
            raise ConfigurationError(
                f"min_size ({self.min_size}) must be <= max_size ({self.max_size})"
            )


ChunkerConfig = Union[CharacterConfig, RecursiveConfig, MarkdownConfig, JsonConfig]

STRATEGIES: dict[str, type] = {
    cls.strategy: cls
    for cls in (CharacterConfig, RecursiveConfig, MarkdownConfig, JsonConfig)
}

# camelCase spellings accepted from JSON/YAML written against the JS tooling.
_ALIASES = {
    "maxSize": "max_size",
    "minSize": "min_size",
    "stripHeaders": "strip_headers",
}


def config_from_dict(raw: Mapping[str, Any]) -> ChunkerConfig:
    """Build a strategy config from ``{"strategy": "...", **params}``.

    Raises:
        ConfigurationError: Unknown strategy, unknown parameter, missing
            required parameter, or failed validation.
    """
    params = {_ALIASES.get(k, k): v for k, v in raw.items()}
    name = params.pop("strategy", None)
    if name not in STRATEGIES:
        raise ConfigurationError(
            f"Unknown chunking strategy {name!r}. "
            f"Choose one of: {', '.join(sorted(STRATEGIES))}"
        )
    cls = STRATEGIES[name]
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise ConfigurationError(
            f"Unknown parameter(s) for '{name}' strategy: {', '.join(unknown)}"
        )

    try:
        if "headers" in params and params["headers"] is not None:
            params["headers"] = tuple(tuple(pair) for pair in params["headers"])
        if "separators" in params and params["separators"] is not None:
            params["separators"] = tuple(params["separators"])
    except TypeError as exc:
        raise ConfigurationError(
            f"headers and separators for '{name}' strategy must be lists", cause=exc
        ) from exc

    try:
        config = cls(**params)
    except TypeError as exc:
        raise ConfigurationError(
            f"Missing required parameter for '{name}' strategy: {exc}", cause=exc
        ) from exc
    config.validate()
    return config


def count_tokens(text: str) -> int:
    """Approximate token count: 4 characters ≈ 1 token."""
    return max(1, len(text) // 4)


def _check_size(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ConfigurationError(f"{name} must be an integer >= 1, got {value!r}")


def _check_count(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ConfigurationError(f"{name} must be an integer >= 0, got {value!r}")


def _check_overlap(overlap: int, size: int, size_name: str) -> None:
    _check_count("overlap", overlap)
    if overlap >= size:
        raise ConfigurationError(
            f"overlap ({overlap}) must be smaller than {size_name} ({size})"
        )
