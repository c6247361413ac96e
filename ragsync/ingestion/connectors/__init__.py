"""Source adapters that turn external content into indexable chunks."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models import Connector


@dataclass(slots=True)
class ConnectorChunk:
    """One chunk of text produced by an adapter, plus its provenance."""

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class SourceAdapter(Protocol):
    """Capability shared by every adapter: fetch chunks for a connector."""

    def fetch_chunks(self, connector: Connector) -> list[ConnectorChunk]:
        ...


def default_timeout() -> float:
    """HTTP timeout in seconds for adapter requests (``HTTP_TIMEOUT``)."""

    return float(os.getenv("HTTP_TIMEOUT", "30"))


def base_metadata(connector: Connector, chunk_index: int) -> dict[str, Any]:
    """Provenance keys present on every chunk regardless of source kind."""

    return {
        "source_kind": connector.source_kind.value,
        "connector_id": connector.id,
        "connector_name": connector.name,
        "chunk_index": chunk_index,
    }


__all__ = ["ConnectorChunk", "SourceAdapter", "base_metadata", "default_timeout"]
