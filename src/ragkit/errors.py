"""Structured error taxonomy for the chunk → embed → store → retrieve pipeline.

Every failure carries a ``kind`` (stable machine-readable label), a human
message and, where one exists, the originating exception (``cause``). A call
either fully succeeds or raises one of these; no partial results are returned.

Usage:
    from ragkit.errors import ConfigurationError
    raise ConfigurationError("overlap must be < size")
"""

from __future__ import annotations

from typing import Any


class RagError(Exception):
    """Base class for all ragkit errors."""

    kind: str = "error"

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Return ``{kind, message, cause}`` for JSON output."""
        return {
            "kind": self.kind,
            "message": self.message,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


class ConfigurationError(RagError, ValueError):
    """Invalid chunker/store/config parameters. Raised before any work starts."""

    kind = "configuration"


class ChunkParseError(RagError, ValueError):
    """Structural strategy could not parse its input (e.g. malformed JSON)."""

    kind = "parse"


class FilterError(RagError, ValueError):
    """Metadata filter uses an unsupported operator or malformed operand."""

    kind = "invalid_filter"


class DimensionMismatchError(RagError, ValueError):
    """Vector length does not match the index's declared dimension."""

    kind = "dimension_mismatch"

    def __init__(
        self,
        message: str,
        *,
        expected: int,
        actual: int,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.expected = expected
        self.actual = actual


class IndexNotFoundError(RagError, LookupError):
    """Named index does not exist in the vector store."""

    kind = "missing_resource"

    def __init__(self, index_name: str) -> None:
        super().__init__(
            f"Index '{index_name}' does not exist. "
            "Create it first (ragkit index create / ragkit ingest)."
        )
        self.index_name = index_name


class ExternalServiceError(RagError, RuntimeError):
    """An embedding, LLM or other provider call failed."""

    kind = "external_service"


class EmbeddingError(ExternalServiceError):
    """Embedding provider failure or malformed embedding response."""


class RerankError(ExternalServiceError):
    """Reranking LLM failure or unparseable relevance score."""


class ToolError(ExternalServiceError):
    """Agent tool dispatch failure (unknown tool, bad arguments, runaway loop)."""
