"""Embedding service used for both indexing and query-time retrieval.

Two providers are supported and selected with ``EMBEDDING_PROVIDER``:

- ``fastembed`` (default): local multilingual sentence embeddings via
  ``fastembed.TextEmbedding``; no network access after the model download.
- ``openai``: the hosted embeddings API (requires ``OPENAI_API_KEY``).

Callers treat every provider as fallible. Nothing here retries or caches
vectors; the only cached object is the provider instance itself.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from threading import Lock
from typing import List, Protocol

from fastembed import TextEmbedding
from openai import OpenAI

logger = logging.getLogger(__name__)

FASTEMBED_MODEL = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
OPENAI_MODEL = "text-embedding-3-small"

_KNOWN_DIMENSIONS = {
    FASTEMBED_MODEL: 384,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


class Embedder(Protocol):
    """Anything that maps texts to fixed-length vectors, one per input."""

    dimension: int | None

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        ...


class FastEmbedEmbedder:
    """Local embeddings through fastembed."""

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or os.getenv("EMBEDDING_MODEL") or FASTEMBED_MODEL
        self._model = TextEmbedding(model_name=self.model_name)
        self.dimension = _KNOWN_DIMENSIONS.get(self.model_name)

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        return [[float(x) for x in vector] for vector in self._model.embed(list(texts))]


class OpenAIEmbedder:
    """Hosted embeddings through the OpenAI API."""

    def __init__(self, model_name: str | None = None, client: OpenAI | None = None):
        self.model_name = model_name or os.getenv("EMBEDDING_MODEL") or OPENAI_MODEL
        self._client = client or OpenAI(api_key=os.getenv("OPENAI_API_KEY"))
        self.dimension = _KNOWN_DIMENSIONS.get(self.model_name)

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        response = self._client.embeddings.create(model=self.model_name, input=list(texts))
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


_PROVIDERS = {
    "fastembed": FastEmbedEmbedder,
    "openai": OpenAIEmbedder,
}

_embedder: Embedder | None = None
_lock = Lock()


def create_embedder(provider: str | None = None) -> Embedder:
    """Instantiate the embedder for ``provider`` (default ``EMBEDDING_PROVIDER``)."""

    name = (provider or os.getenv("EMBEDDING_PROVIDER") or "fastembed").lower()
    try:
        factory = _PROVIDERS[name]
    except KeyError as exc:
        raise ValueError(f"unknown embedding provider: {name}") from exc
    logger.info("using %s embeddings", name)
    return factory()


def get_embedder() -> Embedder:
    """Return the process-wide embedder, creating it on first use."""

    global _embedder
    with _lock:
        if _embedder is None:
            _embedder = create_embedder()
        return _embedder


def reset_embedder() -> None:
    """Forget the cached embedder (used when configuration changes)."""

    global _embedder
    with _lock:
        _embedder = None


def embed_text(text: str, embedder: Embedder | None = None) -> List[float]:
    """Embed a single string."""

    return (embedder or get_embedder()).embed([text])[0]


__all__ = [
    "Embedder",
    "FastEmbedEmbedder",
    "OpenAIEmbedder",
    "create_embedder",
    "embed_text",
    "get_embedder",
    "reset_embedder",
]
