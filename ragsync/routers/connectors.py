"""Connector management and sync endpoints.

Operators register sources here, trigger syncs and inspect the resulting
chunk set. Secrets stored in a connector's config are masked in every
response.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from typing import Annotated

import psycopg
from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from ..core import db
from ..ingestion import service, storage
from ..ingestion.errors import (
    ConfigurationError,
    ConnectorNotFoundError,
    SyncInProgressError,
)
from ..ingestion.models import (
    Connector,
    ConnectorCreate,
    ConnectorOut,
    ConnectorUpdate,
    ListResponse,
    StoredChunk,
)
from ..limits import RATE_LIMIT_SYNC, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/connectors", tags=["connectors"])

ActiveParam = Annotated[bool | None, Query()]
BackgroundParam = Annotated[bool, Query()]


def _get_conn() -> AbstractContextManager[psycopg.Connection]:
    """Return a connection context manager or raise HTTP 500."""
    try:
        return db.connect()
    except Exception as exc:  # pragma: no cover
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _fetch_connector(conn: psycopg.Connection, connector_id: int) -> Connector:
    connector = storage.get_connector(conn, connector_id)
    if connector is None:
        raise HTTPException(status_code=404, detail="Connector not found")
    return connector


@router.get("", response_model=ListResponse[ConnectorOut])
def list_connectors(active: ActiveParam = None) -> ListResponse[ConnectorOut]:
    with _get_conn() as conn:
        connectors = storage.list_connectors(conn, active=active)
    items = [ConnectorOut.from_connector(c) for c in connectors]
    return ListResponse[ConnectorOut](items=items, total=len(items))


@router.post("", response_model=ConnectorOut, status_code=201)
def create_connector(payload: ConnectorCreate) -> ConnectorOut:
    with _get_conn() as conn:
        connector = storage.create_connector(conn, payload)
    return ConnectorOut.from_connector(connector)


@router.get("/{connector_id}", response_model=ConnectorOut)
def get_connector(connector_id: int) -> ConnectorOut:
    with _get_conn() as conn:
        connector = _fetch_connector(conn, connector_id)
    return ConnectorOut.from_connector(connector)


@router.patch("/{connector_id}", response_model=ConnectorOut)
def update_connector(connector_id: int, payload: ConnectorUpdate) -> ConnectorOut:
    with _get_conn() as conn:
        try:
            connector = storage.update_connector(conn, connector_id, payload)
        except ConfigurationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    if connector is None:
        raise HTTPException(status_code=404, detail="Connector not found")
    return ConnectorOut.from_connector(connector)


@router.delete("/{connector_id}", status_code=204)
def delete_connector(connector_id: int) -> Response:
    with _get_conn() as conn:
        deleted = storage.delete_connector(conn, connector_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Connector not found")
    return Response(status_code=204)


@router.get("/{connector_id}/documents", response_model=ListResponse[StoredChunk])
def list_documents(connector_id: int) -> ListResponse[StoredChunk]:
    """Return the connector's current chunk set in sync order."""
    with _get_conn() as conn:
        _fetch_connector(conn, connector_id)
        chunks = storage.list_chunks(conn, connector_id)
    return ListResponse[StoredChunk](items=chunks, total=len(chunks))


@router.post("/{connector_id}/sync")
@limiter.limit(RATE_LIMIT_SYNC)
def sync_connector(
    request: Request,
    connector_id: int,
    background: BackgroundParam = False,
):
    """Run a sync now, or queue it with ``?background=true``.

    Foreground syncs answer 200 ``{success, count}`` or 500
    ``{success: false, error}``. A connector that is already syncing
    answers 409.
    """
    if background:
        with _get_conn() as conn:
            _fetch_connector(conn, connector_id)
        service.submit_sync(connector_id)
        return JSONResponse(
            status_code=202, content={"queued": True, "connector_id": connector_id}
        )

    try:
        result = service.sync_connector(connector_id)
    except ConnectorNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Connector not found") from exc
    except SyncInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if result.success:
        return {"success": True, "count": result.documents_count}
    return JSONResponse(status_code=500, content={"success": False, "error": result.error})
