"""LLM-backed reranking of retrieved candidates.

Each candidate gets three component scores in [0, 1]:

  semantic  LLM-judged relevance of the candidate text to the query (0–10 / 10)
  vector    the store's cosine similarity, clamped to [0, 1]
  position  1 - i / n, where i is the candidate's retrieval rank

combined = w_semantic * semantic + w_vector * vector + w_position * position

Candidates are returned sorted by combined score (ties keep retrieval order),
truncated to ``top_k``. The output is always a subset of the input.
"""

from __future__ import annotations

import logging
import re
from typing import Mapping, Protocol, Sequence

from ragkit.errors import ConfigurationError, ExternalServiceError, RerankError
from ragkit.models import QueryResult, RerankResult
from ragkit.rag.llm_client import complete

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: dict[str, float] = {"semantic": 0.4, "vector": 0.4, "position": 0.2}

_SCORE_RE = re.compile(r"-?\d+(?:\.\d+)?")

_RELEVANCE_PROMPT = """\
Rate how relevant the following text is to the query on a scale from 0 \
(irrelevant) to 10 (directly answers the query). Reply with the number only.

Query:
{query}

Text:
{text}

Relevance score:"""


class Reranker(Protocol):
    def rerank(
        self, candidates: Sequence[QueryResult], query: str, top_k: int
    ) -> list[RerankResult]: ...


class LLMReranker:
    """Cross-encoder-style reranker that asks an LLM to judge each candidate.

    Args:
        model: LiteLLM chat model string (provider/model format).
        weights: Component weights; missing keys fall back to DEFAULT_WEIGHTS.
        max_chars: Candidate text is truncated to this many characters in the prompt.
    """

    def __init__(
        self,
        model: str = "openai/gpt-4o",
        weights: Mapping[str, float] | None = None,
        max_chars: int = 2000,
    ) -> None:
        merged = {**DEFAULT_WEIGHTS, **(weights or {})}
        unknown = set(merged) - set(DEFAULT_WEIGHTS)
        if unknown:
            raise ConfigurationError(f"Unknown rerank weight(s): {', '.join(sorted(unknown))}")
        if any(w < 0 for w in merged.values()) or sum(merged.values()) <= 0:
            raise ConfigurationError("Rerank weights must be >= 0 and not all zero")
        self.model = model
        self.weights = merged
        self.max_chars = max_chars

    def rerank(
        self, candidates: Sequence[QueryResult], query: str, top_k: int
    ) -> list[RerankResult]:
        """Return at most *top_k* candidates ordered by combined relevance.

        Raises:
            ConfigurationError: top_k < 1.
            RerankError: LLM call failed or returned no usable score.
        """
        if top_k < 1:
            raise ConfigurationError(f"top_k must be >= 1, got {top_k}")
        n = len(candidates)
        scored: list[tuple[float, int, RerankResult]] = []
        for i, candidate in enumerate(candidates):
            semantic = self._semantic_score(query, candidate.text)
            details = {
                "semantic": semantic,
                "vector": min(1.0, max(0.0, candidate.score)),
                "position": 1.0 - i / n,
            }
            combined = sum(self.weights[k] * v for k, v in details.items())
            scored.append((combined, i, RerankResult(candidate, combined, details)))

        scored.sort(key=lambda s: (-s[0], s[1]))
        logger.debug("Reranked %d candidates with %s", n, self.model)
        return [s[2] for s in scored[:top_k]]

    def _semantic_score(self, query: str, text: str) -> float:
        prompt = _RELEVANCE_PROMPT.format(query=query, text=text[: self.max_chars])
        try:
            response = complete(
                self.model,
                [{"role": "user", "content": prompt}],
                max_tokens=8,
                temperature=0.0,
            )
        except ExternalServiceError as exc:
            raise RerankError(f"Reranking with '{self.model}' failed: {exc}", cause=exc) from exc

        content = response.choices[0].message.content or ""
        match = _SCORE_RE.search(content)
        if match is None:
            raise RerankError(
                f"Reranker '{self.model}' returned no relevance score: {content!r}"
            )
        return min(10.0, max(0.0, float(match.group()))) / 10.0


def rerank(
    candidates: Sequence[QueryResult],
    query: str,
    model: str,
    top_k: int = 5,
    weights: Mapping[str, float] | None = None,
) -> list[RerankResult]:
    """Rerank *candidates* for *query* with an LLM *model*; at most *top_k* results."""
    return LLMReranker(model=model, weights=weights).rerank(candidates, query, top_k=top_k)
