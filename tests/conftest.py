import pathlib
import sys
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi import FastAPI, Request

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from ragsync.app_logging import init_logging
from ragsync.ingestion.models import Connector, SourceKind


@pytest.fixture
def make_connector():
    """Build :class:`Connector` records without a database."""

    def _make(kind: SourceKind | str, config: dict[str, Any], **overrides: Any) -> Connector:
        payload: dict[str, Any] = {
            "id": 1,
            "name": "Docs",
            "source_kind": SourceKind(kind),
            "config": config,
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        payload.update(overrides)
        return Connector(**payload)

    return _make


@pytest.fixture
def app_factory(monkeypatch):
    """Create a tiny FastAPI app with logging initialised in ``log_dir``."""

    def _create(log_dir: pathlib.Path, *, log_request_bodies: bool = False) -> FastAPI:
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        monkeypatch.setenv("LOG_REQUEST_BODIES", "true" if log_request_bodies else "false")
        app = FastAPI()

        @app.post("/echo")
        async def echo(request: Request):
            return {"rid": request.state.request_id}

        @app.get("/api/health")
        async def health():
            return {"status": "ok"}

        init_logging(app)
        return app

    return _create
