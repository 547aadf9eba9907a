"""LiteLLM client wrapper — embeddings, completions and API key validation.

All embedding + LLM calls route through this module. No retries happen here
(``num_retries=0`` is passed explicitly): provider failures surface as typed
``ExternalServiceError`` subclasses carrying the original exception, and any
retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Sequence

import litellm

from ragkit.errors import EmbeddingError, ExternalServiceError

logger = logging.getLogger(__name__)

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Provider prefix of a 'provider/model' string (``openai`` when absent)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 1024,
    temperature: float = 0.0,
    **kwargs: Any,
) -> Any:
    """Call litellm.completion() and return the raw response.

    Raises:
        ExternalServiceError: On any provider failure.
    """
    try:
        return litellm.completion(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            num_retries=0,
            **kwargs,
        )
    except Exception as exc:
        raise ExternalServiceError(
            f"Completion call to '{model}' failed: {exc}", cause=exc
        ) from exc


class Embedder:
    """Embedding client: ``embed(text)`` and order-preserving ``embed_batch(texts)``.

    ``embed_batch`` issues one provider round-trip per *batch_size* texts.

    Args:
        model: LiteLLM embedding model string (provider/model format).
        batch_size: Maximum texts per embedding request.
    """

    def __init__(self, model: str = "openai/text-embedding-3-small", batch_size: int = 96) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.model = model
        self.batch_size = batch_size

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts*; result position *i* is the embedding of ``texts[i]``.

        Raises:
            EmbeddingError: Provider failure or a response that does not pair
                1:1 with the input.
        """
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = list(texts[start : start + self.batch_size])
            vectors.extend(self._embed_request(batch))
        return vectors

    def _embed_request(self, batch: list[str]) -> list[list[float]]:
        try:
            response = litellm.embedding(model=self.model, input=batch, num_retries=0)
        except Exception as exc:
            raise EmbeddingError(
                f"Embedding call to '{self.model}' failed: {exc}", cause=exc
            ) from exc

        data = list(response.data)
        if len(data) != len(batch):
            raise EmbeddingError(
                f"Embedding response has {len(data)} vectors for {len(batch)} inputs"
            )
        # Providers may return items out of order; each carries its input index.
        data.sort(key=lambda item: _field(item, "index", 0))
        logger.debug("Embedded batch of %d texts with %s", len(batch), self.model)
        return [list(_field(item, "embedding", [])) for item in data]


def _field(item: Any, name: str, default: Any) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)
