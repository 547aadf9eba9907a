"""Retriever: query embedding + metadata filter + top-K against a named index.

Optional query biasing: a prefix such as ``"function "`` or ``"class "`` is
prepended before embedding to pull the query vector toward that category of
code element (see CODE_QUERY_PREFIXES).

``search()`` sequences the two stages: it always retrieves first and only
then reranks the retrieved candidates, passing the same query text to both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ragkit.db.filters import Filter, validate_filter
from ragkit.db.store import VectorStore
from ragkit.errors import ConfigurationError
from ragkit.models import QueryResult, RerankResult
from ragkit.rag.llm_client import Embedder

if TYPE_CHECKING:
    from ragkit.rag.reranker import Reranker

logger = logging.getLogger(__name__)

CODE_QUERY_PREFIXES: dict[str, str] = {
    "function": "function ",
    "method": "method ",
    "class": "class ",
}

CODE_CHUNK_TYPES: dict[str, str] = {
    "function": "function_definition",
    "method": "method_definition",
    "class": "class_definition",
}


@dataclass
class RetrieverConfig:
    """Configuration for a retrieval call.

    Attributes:
        index_name: Vector store index to query.
        top_k: Maximum number of candidates returned by the vector query.
        query_prefix: Text prepended to the query before embedding only.
    """

    index_name: str = "workshop"
    top_k: int = 10
    query_prefix: str = ""


def retrieve(
    query: str,
    store: VectorStore,
    embedder: Embedder,
    config: RetrieverConfig,
    filter: Filter | None = None,
) -> list[QueryResult]:
    """Embed *query* and return the index's nearest matching records, best-first.

    An empty filter matches everything. Filter field names are passed through
    unchecked; the store rejects malformed operators.

    Raises:
        FilterError: Malformed filter (raised before the embedding call).
        EmbeddingError: Embedding provider failure.
        IndexNotFoundError / DimensionMismatchError: From the store.
    """
    validate_filter(filter)
    embed_text = f"{config.query_prefix}{query}" if config.query_prefix else query
    vector = embedder.embed(embed_text)
    results = store.query(config.index_name, vector, top_k=config.top_k, filter=filter or None)
    logger.debug(
        "Retrieved %d candidates from '%s' (filter=%s)",
        len(results),
        config.index_name,
        filter or {},
    )
    return results


def search(
    query: str,
    store: VectorStore,
    embedder: Embedder,
    config: RetrieverConfig,
    filter: Filter | None = None,
    reranker: Reranker | None = None,
    rerank_top_k: int | None = None,
) -> list[QueryResult] | list[RerankResult]:
    """Retrieve, then rerank with the same *query* when *reranker* is given.

    Returns QueryResults (similarity order) without a reranker, RerankResults
    (reranked order, at most *rerank_top_k*) with one.
    """
    candidates = retrieve(query, store, embedder, config, filter=filter)
    if reranker is None:
        return candidates
    return reranker.rerank(candidates, query, top_k=rerank_top_k or config.top_k)


def code_retriever_config(
    kind: str, index_name: str, top_k: int = 5
) -> RetrieverConfig:
    """RetrieverConfig biased toward *kind* (function, method or class)."""
    if kind not in CODE_QUERY_PREFIXES:
        raise ConfigurationError(
            f"Unknown code kind {kind!r}; expected one of {', '.join(CODE_QUERY_PREFIXES)}"
        )
    return RetrieverConfig(
        index_name=index_name, top_k=top_k, query_prefix=CODE_QUERY_PREFIXES[kind]
    )
