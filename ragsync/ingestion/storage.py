"""Database helpers for connectors and their indexed chunks.

This module wraps the SQL used by the sync pipeline and the retriever so the
rest of the code deals only with pydantic models. Every function takes an open
psycopg connection (see :func:`ragsync.core.db.connect`).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import numpy as np
import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from .connectors import ConnectorChunk
from .errors import ConnectorNotFoundError, SyncInProgressError, SyncSupersededError
from .models import (
    Connector,
    ConnectorCreate,
    ConnectorUpdate,
    DocumentMatch,
    StoredChunk,
    SyncStatus,
    parse_config,
)

logger = logging.getLogger(__name__)

_CONNECTOR_COLUMNS = sql.SQL(
    "id, name, source_kind, config, is_active, sync_status, sync_error, "
    "documents_count, last_synced_at, sync_generation, sync_started_at, "
    "created_at, updated_at"
)


def _vector(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float32)


def _to_connector(row: dict[str, Any] | None) -> Connector | None:
    if row is None:
        return None
    return Connector(**row)


# ---------------------------------------------------------------------------
# Connector records
# ---------------------------------------------------------------------------


def create_connector(conn: psycopg.Connection, payload: ConnectorCreate) -> Connector:
    """Insert a connector in the ``idle`` state and return it."""

    query = sql.SQL(
        "INSERT INTO connectors (name, source_kind, config, is_active) "
        "VALUES (%s, %s, %s, %s) RETURNING {columns}"
    ).format(columns=_CONNECTOR_COLUMNS)
    with conn.transaction():
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                query,
                (
                    payload.name,
                    payload.source_kind.value,
                    Jsonb(payload.config),
                    payload.is_active,
                ),
            )
            connector = _to_connector(cur.fetchone())
    assert connector is not None
    logger.info("created connector %s (%s)", connector.id, connector.source_kind.value)
    return connector


def get_connector(conn: psycopg.Connection, connector_id: int) -> Connector | None:
    query = sql.SQL("SELECT {columns} FROM connectors WHERE id = %s").format(
        columns=_CONNECTOR_COLUMNS
    )
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, (connector_id,))
        return _to_connector(cur.fetchone())


def list_connectors(
    conn: psycopg.Connection, *, active: bool | None = None
) -> list[Connector]:
    """Return connectors newest first, optionally filtered by ``is_active``."""

    query = sql.SQL("SELECT {columns} FROM connectors").format(columns=_CONNECTOR_COLUMNS)
    params: list[Any] = []
    if active is not None:
        query += sql.SQL(" WHERE is_active = %s")
        params.append(active)
    query += sql.SQL(" ORDER BY created_at DESC, id DESC")
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, params)
        return [Connector(**row) for row in cur.fetchall()]


def update_connector(
    conn: psycopg.Connection, connector_id: int, changes: ConnectorUpdate
) -> Connector | None:
    """Apply a partial update of name/config/is_active."""

    current = get_connector(conn, connector_id)
    if current is None:
        return None

    fields: list[sql.Composable] = []
    values: list[Any] = []
    if changes.name is not None:
        fields.append(sql.SQL("name = %s"))
        values.append(changes.name)
    if changes.config is not None:
        parse_config(current.source_kind, changes.config)
        fields.append(sql.SQL("config = %s"))
        values.append(Jsonb(changes.config))
    if changes.is_active is not None:
        fields.append(sql.SQL("is_active = %s"))
        values.append(changes.is_active)
    if not fields:
        return current

    query = sql.SQL(
        "UPDATE connectors SET {fields}, updated_at = now() WHERE id = %s RETURNING {columns}"
    ).format(fields=sql.SQL(", ").join(fields), columns=_CONNECTOR_COLUMNS)
    values.append(connector_id)
    with conn.transaction():
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, values)
            return _to_connector(cur.fetchone())


def delete_connector(conn: psycopg.Connection, connector_id: int) -> bool:
    """Delete a connector; its chunks go with it via ``ON DELETE CASCADE``."""

    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute("DELETE FROM connectors WHERE id = %s", (connector_id,))
            deleted = cur.rowcount > 0
    if deleted:
        logger.info("deleted connector %s", connector_id)
    return deleted


# ---------------------------------------------------------------------------
# Sync state
# ---------------------------------------------------------------------------


def begin_sync(
    conn: psycopg.Connection, connector_id: int, *, stale_after: float
) -> Connector:
    """Claim ``connector_id`` for a new sync and mark it ``syncing``.

    The claim succeeds unless another sync is live, i.e. the connector is
    ``syncing`` and was claimed less than ``stale_after`` seconds ago. Each
    claim bumps ``sync_generation``; the returned connector carries the new
    value, which later writes must present.
    """

    query = sql.SQL(
        """
        UPDATE connectors
        SET sync_status = %s,
            sync_error = NULL,
            sync_generation = sync_generation + 1,
            sync_started_at = now(),
            updated_at = now()
        WHERE id = %s
          AND (
            sync_status <> %s
            OR sync_started_at IS NULL
            OR sync_started_at < now() - make_interval(secs => %s)
          )
        RETURNING {columns}
        """
    ).format(columns=_CONNECTOR_COLUMNS)
    with conn.transaction():
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                query,
                (
                    SyncStatus.SYNCING.value,
                    connector_id,
                    SyncStatus.SYNCING.value,
                    float(stale_after),
                ),
            )
            connector = _to_connector(cur.fetchone())
            if connector is None:
                cur.execute("SELECT 1 FROM connectors WHERE id = %s", (connector_id,))
                if cur.fetchone() is None:
                    raise ConnectorNotFoundError(connector_id)
                raise SyncInProgressError(connector_id)
    return connector


def replace_chunks(
    conn: psycopg.Connection,
    connector_id: int,
    *,
    generation: int,
    chunks: Sequence[ConnectorChunk],
    embeddings: Sequence[Sequence[float]],
    completed_at: datetime,
) -> int:
    """Swap the connector's chunk set and mark the sync successful.

    Delete, insert and status update run in one transaction, so readers see
    either the previous chunk set or the new one. Raises
    :class:`SyncSupersededError` when ``generation`` is no longer the latest
    claim.
    """

    if len(chunks) != len(embeddings):
        raise ValueError("chunks and embeddings must have the same length")

    rows = [
        (connector_id, position, chunk.content, Jsonb(chunk.metadata), _vector(embedding))
        for position, (chunk, embedding) in enumerate(zip(chunks, embeddings))
    ]
    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute(
                "SELECT sync_generation FROM connectors WHERE id = %s FOR UPDATE",
                (connector_id,),
            )
            row = cur.fetchone()
            if row is None:
                raise ConnectorNotFoundError(connector_id)
            if row[0] != generation:
                raise SyncSupersededError(connector_id, generation)

            cur.execute("DELETE FROM documents WHERE connector_id = %s", (connector_id,))
            cur.executemany(
                """
                INSERT INTO documents (connector_id, position, content, metadata, embedding)
                VALUES (%s, %s, %s, %s, %s)
                """,
                rows,
            )
            cur.execute(
                """
                UPDATE connectors
                SET sync_status = %s,
                    sync_error = NULL,
                    documents_count = %s,
                    last_synced_at = %s,
                    updated_at = now()
                WHERE id = %s
                """,
                (SyncStatus.SUCCESS.value, len(rows), completed_at, connector_id),
            )
    return len(rows)


def mark_sync_failed(
    conn: psycopg.Connection, connector_id: int, *, generation: int, error: str
) -> bool:
    """Record a failed attempt; counts, timestamp and chunks stay as they were.

    Returns ``False`` when a newer claim exists and nothing was written.
    """

    with conn.transaction():
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE connectors
                SET sync_status = %s, sync_error = %s, updated_at = now()
                WHERE id = %s AND sync_generation = %s
                """,
                (SyncStatus.ERROR.value, error, connector_id, generation),
            )
            updated = cur.rowcount > 0
    if not updated:
        logger.warning(
            "connector %s: error for superseded generation %s not recorded",
            connector_id,
            generation,
        )
    return updated


# ---------------------------------------------------------------------------
# Chunks
# ---------------------------------------------------------------------------


def list_chunks(conn: psycopg.Connection, connector_id: int) -> list[StoredChunk]:
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            """
            SELECT id, connector_id, position, content, metadata
            FROM documents
            WHERE connector_id = %s
            ORDER BY position
            """,
            (connector_id,),
        )
        return [StoredChunk(**row) for row in cur.fetchall()]


def match_documents(
    conn: psycopg.Connection,
    embedding: Sequence[float],
    match_count: int,
    *,
    min_similarity: float | None = None,
) -> list[DocumentMatch]:
    """Return the ``match_count`` chunks nearest to ``embedding``.

    ``<=>`` is pgvector's cosine distance operator; similarity is reported as
    ``1 - distance`` so higher means closer. Results span all connectors.

    Only chunks whose embedding has the query's dimension are compared.
    Chunks written by a different embedding model are left out (and logged)
    until their connector is re-synced.
    """

    qvec = _vector(embedding)
    dims = len(qvec)
    # MATERIALIZED keeps the dimension filter ahead of any distance evaluation
    query = (
        "WITH candidates AS MATERIALIZED ("
        "SELECT id, connector_id, content, metadata, embedding FROM documents "
        "WHERE vector_dims(embedding) = %s) "
        "SELECT id, connector_id, content, metadata, "
        "1 - (embedding <=> %s) AS similarity FROM candidates"
    )
    params: list[Any] = [dims, qvec]
    if min_similarity is not None:
        query += " WHERE 1 - (embedding <=> %s) >= %s"
        params.extend([qvec, min_similarity])
    query += " ORDER BY embedding <=> %s LIMIT %s"
    params.extend([qvec, match_count])

    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(query, params)
        matches = [DocumentMatch(**row) for row in cur.fetchall()]
        if len(matches) < match_count:
            cur.execute(
                """
                SELECT count(*) AS chunks, count(DISTINCT connector_id) AS connectors
                FROM documents
                WHERE vector_dims(embedding) <> %s
                """,
                (dims,),
            )
            stale = cur.fetchone()
            if stale and stale["chunks"]:
                logger.warning(
                    "%d chunk(s) from %d connector(s) skipped: embedding dimension "
                    "differs from query dimension %d; re-sync them",
                    stale["chunks"],
                    stale["connectors"],
                    dims,
                )
    return matches


__all__ = [
    "begin_sync",
    "create_connector",
    "delete_connector",
    "get_connector",
    "list_chunks",
    "list_connectors",
    "mark_sync_failed",
    "match_documents",
    "replace_chunks",
    "update_connector",
]
