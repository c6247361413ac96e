"""Query-time retrieval over the synced chunks.

The retriever embeds the query with the same embedder used at sync time and
asks pgvector for the nearest chunks by cosine distance, across all
connectors. Retrieval is an enrichment step for callers building prompts, so
every failure degrades to "no context" instead of raising.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, List, Tuple

from .core import db
from .embeddings import Embedder, get_embedder
from .ingestion import storage
from .ingestion.models import DocumentMatch

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "Relevant project information:\n"


def default_top_k() -> int:
    return int(os.getenv("RETRIEVAL_TOP_K", "5"))


def retrieve_context(
    query: str,
    k: int | None = None,
    *,
    embedder: Embedder | None = None,
    connect: Callable | None = None,
    min_similarity: float | None = None,
) -> List[DocumentMatch]:
    """Return up to ``k`` chunks most similar to ``query``, best first.

    Parameters
    ----------
    query:
        Free text. Blank queries return ``[]`` without touching the embedder.
    k:
        Number of matches; defaults to ``RETRIEVAL_TOP_K`` (5).
    min_similarity:
        Optional floor on ``1 - cosine distance``. ``None`` keeps the plain
        top-k behaviour.

    Any embedding or lookup failure is logged and yields ``[]``.
    """

    if not query or not query.strip():
        return []
    count = k if k is not None else default_top_k()
    if count < 1:
        return []

    try:
        vector = (embedder or get_embedder()).embed([query])[0]
        with (connect or db.connect)() as conn:
            return storage.match_documents(
                conn, vector, count, min_similarity=min_similarity
            )
    except Exception:
        logger.warning("context retrieval failed", exc_info=True)
        return []


def format_context(matches: List[DocumentMatch]) -> str:
    if not matches:
        return ""
    return CONTEXT_HEADER + "\n\n".join(match.content for match in matches)


def build_context(
    query: str, k: int | None = None, **kwargs
) -> Tuple[str, List[DocumentMatch]]:
    """Retrieve matches and render them as a prompt-ready context block."""

    matches = retrieve_context(query, k, **kwargs)
    return format_context(matches), matches


__all__ = ["CONTEXT_HEADER", "build_context", "format_context", "retrieve_context"]
