"""Connector sync orchestration.

Responsibilities
----------------
- Claim a connector for syncing (status ``syncing``) before any source call,
  allowing at most one live sync per connector id.
- Dispatch to the source adapter registered for the connector's kind.
- Embed the resulting chunks in order and replace the connector's chunk set
  in a single transaction.
- Record the outcome: ``success`` with the new count and timestamp, or
  ``error`` with a readable message while keeping the previous chunks.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Iterator, List

import psycopg

from ..core import db
from ..embeddings import Embedder, get_embedder
from . import storage
from .connectors import ConnectorChunk, SourceAdapter
from .connectors.registry import default_adapters
from .errors import (
    ConfigurationError,
    ConnectorNotFoundError,
    IndexingError,
    NoContentError,
    SyncError,
    SyncInProgressError,
)
from .models import Connector, SourceKind, SyncResult, SyncStatus
from .runner import SyncRunner

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], AbstractContextManager[psycopg.Connection]]


def describe_error(exc: BaseException) -> str:
    """Summarize ``exc`` as the message stored on the connector."""

    if isinstance(exc, SyncError):
        return str(exc)
    text = str(exc).strip()
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class SyncService:
    """Run connector syncs against the record store.

    Collaborators are injectable so tests can substitute adapters, the
    embedder and the connection factory.
    """

    def __init__(
        self,
        *,
        adapters: Mapping[SourceKind, SourceAdapter] | None = None,
        embedder: Embedder | None = None,
        connect: ConnectionFactory | None = None,
        batch_size: int | None = None,
        stale_after: float | None = None,
    ) -> None:
        self.adapters = dict(adapters) if adapters is not None else default_adapters()
        self._embedder = embedder
        self._connect = connect or db.connect
        self.batch_size = batch_size or int(os.getenv("EMBED_BATCH_SIZE", "32"))
        self.stale_after = (
            stale_after
            if stale_after is not None
            else float(os.getenv("SYNC_STALE_AFTER_SECONDS", "600"))
        )
        self._in_flight: set[int] = set()
        self._in_flight_guard = Lock()

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = get_embedder()
        return self._embedder

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @contextmanager
    def _single_flight(self, connector_id: int) -> Iterator[None]:
        with self._in_flight_guard:
            if connector_id in self._in_flight:
                raise SyncInProgressError(connector_id)
            self._in_flight.add(connector_id)
        try:
            yield
        finally:
            with self._in_flight_guard:
                self._in_flight.discard(connector_id)

    def fetch(self, connector: Connector) -> List[ConnectorChunk]:
        """Run the adapter registered for the connector's source kind."""

        adapter = self.adapters.get(connector.source_kind)
        if adapter is None:
            raise ConfigurationError(
                f"no adapter registered for source kind {connector.source_kind.value}"
            )
        return adapter.fetch_chunks(connector)

    def embed_chunks(self, chunks: Sequence[ConnectorChunk]) -> List[List[float]]:
        """Embed chunk contents in batches, preserving order."""

        embedder = self.embedder
        vectors: List[List[float]] = []
        total = len(chunks)
        for start in range(0, total, self.batch_size):
            batch = chunks[start : start + self.batch_size]
            span = f"chunks {start}-{start + len(batch) - 1} of {total}"
            try:
                batch_vectors = embedder.embed([chunk.content for chunk in batch])
            except Exception as exc:
                raise IndexingError(f"embedding failed for {span}: {describe_error(exc)}") from exc
            if len(batch_vectors) != len(batch):
                raise IndexingError(
                    f"embedding service returned {len(batch_vectors)} vectors for {span}"
                )
            vectors.extend(batch_vectors)

        dimensions = {len(vector) for vector in vectors}
        expected = getattr(embedder, "dimension", None)
        if len(dimensions) > 1 or (expected and dimensions and dimensions != {expected}):
            raise IndexingError(
                f"embedding dimensions {sorted(dimensions)} do not match expected {expected}"
            )
        return vectors

    def _store(
        self,
        connector: Connector,
        chunks: Sequence[ConnectorChunk],
        embeddings: Sequence[Sequence[float]],
    ) -> tuple[int, datetime]:
        completed_at = datetime.now(timezone.utc)
        try:
            with self._connect() as conn:
                count = storage.replace_chunks(
                    conn,
                    connector.id,
                    generation=connector.sync_generation,
                    chunks=chunks,
                    embeddings=embeddings,
                    completed_at=completed_at,
                )
        except psycopg.Error as exc:
            raise IndexingError(f"failed to store chunks: {describe_error(exc)}") from exc
        return count, completed_at

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync_connector(self, connector_id: int) -> SyncResult:
        """Fully re-derive the chunk set of ``connector_id`` from its source.

        Raises :class:`ConnectorNotFoundError` or :class:`SyncInProgressError`
        when the connector cannot be claimed; those leave its state untouched.
        Every failure after the claim is recorded on the connector and
        reported in the returned :class:`SyncResult`.
        """

        with self._single_flight(connector_id):
            with self._connect() as conn:
                connector = storage.begin_sync(
                    conn, connector_id, stale_after=self.stale_after
                )
            logger.info(
                "connector %s (%s): sync started, generation %s",
                connector.id,
                connector.source_kind.value,
                connector.sync_generation,
            )

            try:
                chunks = self.fetch(connector)
                if not chunks:
                    raise NoContentError("No content retrieved from source")
                embeddings = self.embed_chunks(chunks)
                count, completed_at = self._store(connector, chunks, embeddings)
            except Exception as exc:
                message = describe_error(exc)
                logger.warning(
                    "connector %s: sync failed: %s",
                    connector.id,
                    message,
                    exc_info=not isinstance(exc, SyncError),
                )
                try:
                    with self._connect() as conn:
                        storage.mark_sync_failed(
                            conn,
                            connector.id,
                            generation=connector.sync_generation,
                            error=message,
                        )
                except psycopg.Error:
                    # the claim expires after stale_after and can be retaken
                    logger.exception(
                        "connector %s: could not record sync failure", connector.id
                    )
                return SyncResult(
                    connector_id=connector.id,
                    status=SyncStatus.ERROR,
                    documents_count=connector.documents_count,
                    error=message,
                    last_synced_at=connector.last_synced_at,
                )

        logger.info("connector %s: sync complete, %d chunk(s)", connector.id, count)
        return SyncResult(
            connector_id=connector.id,
            status=SyncStatus.SUCCESS,
            documents_count=count,
            last_synced_at=completed_at,
        )

    def sync_active_connectors(self) -> List[SyncResult]:
        """Sync every active connector in turn, skipping ones already syncing."""

        with self._connect() as conn:
            connectors = storage.list_connectors(conn, active=True)

        results: List[SyncResult] = []
        for connector in connectors:
            try:
                results.append(self.sync_connector(connector.id))
            except (SyncInProgressError, ConnectorNotFoundError) as exc:
                logger.info("skipping connector %s: %s", connector.id, exc)
        return results


# ---------------------------------------------------------------------------
# High level service API
# ---------------------------------------------------------------------------

_runner = SyncRunner()
_service: SyncService | None = None
_service_lock = Lock()


def get_service() -> SyncService:
    """Return the process-wide :class:`SyncService`."""

    global _service
    with _service_lock:
        if _service is None:
            _service = SyncService()
        return _service


def sync_connector(connector_id: int) -> SyncResult:
    """Sync ``connector_id`` in the calling thread."""

    return get_service().sync_connector(connector_id)


def submit_sync(connector_id: int, service: SyncService | None = None) -> Future:
    """Queue a background sync; returns the pending future if one exists."""

    svc = service or get_service()

    def _work() -> SyncResult:
        try:
            return svc.sync_connector(connector_id)
        except SyncError as exc:
            logger.info("background sync of connector %s not run: %s", connector_id, exc)
            raise
        except Exception:
            logger.exception("background sync of connector %s crashed", connector_id)
            raise

    return _runner.submit(connector_id, _work)


__all__ = [
    "SyncService",
    "describe_error",
    "get_service",
    "submit_sync",
    "sync_connector",
]
