"""Retrieval tools exposed to a tool-calling agent.

Every tool receives an explicit ToolContext (store, embedder, reranker,
index names) rather than reaching for process-wide state. Tool results are
JSON-serialisable lists of hits.

Tools:
  basic_search                plain vector search, no filter
  query_vector                search with an optional metadata filter (+ rerank)
  find_code                   code search biased by kind (function/method/class)
  find_function_definition    look up a function definition by name
  find_related_documentation  documentation-only search
  find_usage_examples         code that uses a given function or feature
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from ragkit.db.store import VectorStore
from ragkit.errors import ToolError
from ragkit.rag.llm_client import Embedder
from ragkit.rag.reranker import Reranker
from ragkit.rag.retriever import (
    CODE_CHUNK_TYPES,
    RetrieverConfig,
    code_retriever_config,
    retrieve,
    search,
)

logger = logging.getLogger(__name__)

_TEST_SOURCE_RE = re.compile(r"(?:^|[\\/])test_[^\\/]*$|[._](?:test|spec)\.\w+$")


@dataclass
class ToolContext:
    """Collaborators shared by all tools of one agent run."""

    store: VectorStore
    embedder: Embedder
    index_name: str = "workshop"
    code_index_name: str = "bonus"
    reranker: Reranker | None = None
    top_k: int = 10
    rerank_top_k: int = 5


@dataclass
class Tool:
    name: str
    description: str
    parameters: dict[str, Any]
    handler: Callable[..., list[dict[str, Any]]]

    def spec(self) -> dict[str, Any]:
        """OpenAI-style function tool spec (accepted by litellm)."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ------------------------------------------------------------------
# Tool implementations
# ------------------------------------------------------------------


def basic_search(ctx: ToolContext, query: str, limit: int = 5) -> list[dict[str, Any]]:
    config = RetrieverConfig(index_name=ctx.index_name, top_k=limit)
    return [_hit(r.to_dict()) for r in retrieve(query, ctx.store, ctx.embedder, config)]


def query_vector(
    ctx: ToolContext,
    query: str,
    filter: Mapping[str, Any] | None = None,
    top_k: int | None = None,
) -> list[dict[str, Any]]:
    config = RetrieverConfig(index_name=ctx.index_name, top_k=top_k or ctx.top_k)
    results = search(
        query,
        ctx.store,
        ctx.embedder,
        config,
        filter=filter,
        reranker=ctx.reranker,
        rerank_top_k=ctx.rerank_top_k,
    )
    return [_hit(r.to_dict()) for r in results]


def find_code(
    ctx: ToolContext,
    query: str,
    type: str = "function",
    section: str | None = None,
    language: str | None = None,
) -> list[dict[str, Any]]:
    config = code_retriever_config(type, ctx.code_index_name, top_k=5)
    filter: dict[str, Any] = {"type": "code", "chunkType": CODE_CHUNK_TYPES[type]}
    if section:
        filter["section"] = section
    if language:
        filter["format"] = language
    results = retrieve(query, ctx.store, ctx.embedder, config, filter=filter)
    return [_hit(r.to_dict()) for r in results]


def find_function_definition(
    ctx: ToolContext, function_name: str, language: str | None = None
) -> list[dict[str, Any]]:
    config = code_retriever_config("function", ctx.code_index_name, top_k=3)
    filter: dict[str, Any] = {"chunkType": "function_definition"}
    if language:
        filter["format"] = language
    results = retrieve(function_name, ctx.store, ctx.embedder, config, filter=filter)
    return [_hit(r.to_dict()) for r in results]


def find_related_documentation(ctx: ToolContext, query: str) -> list[dict[str, Any]]:
    config = RetrieverConfig(index_name=ctx.index_name, top_k=5)
    results = retrieve(query, ctx.store, ctx.embedder, config, filter={"type": "documentation"})
    return [_hit(r.to_dict()) for r in results]


def find_usage_examples(
    ctx: ToolContext, target: str, include_tests: bool = True
) -> list[dict[str, Any]]:
    """Code chunks that show *target* in use.

    Test files are recognised by their ``source`` name (``test_*``,
    ``*.test.*``, ``*.spec.*``, ``*_test.*``) and dropped when
    *include_tests* is false.
    """
    limit = 5
    config = RetrieverConfig(
        index_name=ctx.code_index_name, top_k=limit if include_tests else limit * 4
    )
    results = retrieve(
        f"usage example {target} implementation",
        ctx.store,
        ctx.embedder,
        config,
        filter={"type": "code"},
    )
    if not include_tests:
        results = [r for r in results if not _is_test_source(r.metadata.get("source"))]
    return [_hit(r.to_dict()) for r in results[:limit]]


def _is_test_source(source: Any) -> bool:
    return bool(source) and _TEST_SOURCE_RE.search(str(source)) is not None


def _hit(data: dict[str, Any]) -> dict[str, Any]:
    metadata = dict(data.get("metadata", {}))
    text = metadata.pop("text", "")
    return {**data, "text": text, "metadata": metadata}


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

_CODE_KINDS = sorted(CODE_CHUNK_TYPES)

TOOLS: dict[str, Tool] = {
    t.name: t
    for t in (
        Tool(
            name="basic_search",
            description="Simple vector search across all documents.",
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "The search query"},
                    "limit": {"type": "integer", "description": "Number of results", "default": 5},
                },
                "required": ["query"],
            },
            handler=basic_search,
        ),
        Tool(
            name="query_vector",
            description=(
                "Semantic search over the documentation index with an optional metadata "
                "filter. Filter keys: source, type, section, format. Combine conditions "
                'with {"$and": [...]} or {"$or": [...]}.'
            ),
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "The search query"},
                    "filter": {
                        "type": "object",
                        "description": 'Metadata filter, e.g. {"section": "error-handling"}',
                    },
                    "top_k": {"type": "integer", "description": "Number of candidates"},
                },
                "required": ["query"],
            },
            handler=query_vector,
        ),
        Tool(
            name="find_code",
            description="Finds code snippets, functions, methods or classes in the codebase.",
            parameters={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "What to search for (e.g. 'authentication', 'logging')",
                    },
                    "type": {"type": "string", "enum": _CODE_KINDS, "default": "function"},
                    "section": {"type": "string", "description": "Codebase section to search"},
                    "language": {"type": "string", "description": "typescript, javascript or python"},
                },
                "required": ["query"],
            },
            handler=find_code,
        ),
        Tool(
            name="find_function_definition",
            description="Finds function definitions in the codebase by name.",
            parameters={
                "type": "object",
                "properties": {
                    "function_name": {"type": "string", "description": "Function name to find"},
                    "language": {"type": "string", "description": "Optional language filter"},
                },
                "required": ["function_name"],
            },
            handler=find_function_definition,
        ),
        Tool(
            name="find_related_documentation",
            description="Finds related documentation for a given topic or code element.",
            parameters={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The topic to search for related documentation",
                    },
                },
                "required": ["query"],
            },
            handler=find_related_documentation,
        ),
        Tool(
            name="find_usage_examples",
            description="Finds examples of how to use specific functions or features.",
            parameters={
                "type": "object",
                "properties": {
                    "target": {
                        "type": "string",
                        "description": "The function or feature to find usage examples for",
                    },
                    "include_tests": {
                        "type": "boolean",
                        "description": "Whether to include test files in the search",
                        "default": True,
                    },
                },
                "required": ["target"],
            },
            handler=find_usage_examples,
        ),
    )
}


def openai_tool_specs() -> list[dict[str, Any]]:
    return [t.spec() for t in TOOLS.values()]


def dispatch(
    name: str, arguments: str | Mapping[str, Any] | None, ctx: ToolContext
) -> list[dict[str, Any]]:
    """Run tool *name* with JSON-string or mapping *arguments*.

    Raises:
        ToolError: Unknown tool, unparseable or unexpected arguments.
        RagError: Anything the underlying retrieval raises.
    """
    tool = TOOLS.get(name)
    if tool is None:
        raise ToolError(f"Unknown tool '{name}'. Available: {', '.join(TOOLS)}")

    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as exc:
            raise ToolError(f"Tool '{name}' arguments are not valid JSON", cause=exc) from exc
    if not isinstance(arguments, Mapping) and arguments is not None:
        raise ToolError(f"Tool '{name}' arguments must be a JSON object")
    kwargs = dict(arguments or {})

    allowed = set(tool.parameters["properties"])
    unknown = sorted(set(kwargs) - allowed)
    missing = sorted(set(tool.parameters.get("required", [])) - set(kwargs))
    if unknown or missing:
        raise ToolError(
            f"Bad arguments for tool '{name}': "
            f"unknown={unknown or '-'} missing={missing or '-'}"
        )

    logger.debug("Tool call %s(%s)", name, kwargs)
    return tool.handler(ctx, **kwargs)
