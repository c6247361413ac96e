"""FastAPI application wiring for ragsync.

- Configures logging, CORS (optional, for an admin UI), Prometheus metrics
  and rate limiting.
- Mounts the connector management/sync router.
- Exposes health and version probes and the retrieval endpoint used by
  prompt builders to fetch project context.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .__version__ import __build_date__, __commit_sha__, __version__
from .app_logging import init_logging
from .ingestion.models import ContextRequest
from .limits import RATE_LIMIT_CONTEXT, limiter
from .rag import build_context
from .routers import connectors

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="ragsync", version=__version__)
init_logging(app)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
# Optional CORS for admin UI
admin_ui_origins = os.getenv("ADMIN_UI_ORIGINS")
if admin_ui_origins:
    origins = [o.strip() for o in admin_ui_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.include_router(connectors.router)

# Expose Prometheus metrics
Instrumentator().instrument(app).expose(
    app, include_in_schema=False, endpoint="/api/metrics"
)


@app.get("/api/health")
async def health():
    """Liveness/readiness probe with a minimal JSON body."""
    return {"status": "ok"}


@app.get("/api/version")
async def version():
    """Return version information for the application."""
    return {
        "version": __version__,
        "build_date": __build_date__,
        "commit_sha": __commit_sha__,
    }


@app.post("/api/context")
@limiter.limit(RATE_LIMIT_CONTEXT)
def context(req: ContextRequest, request: Request):
    """Return the chunks most similar to ``query`` and a rendered context block.

    Retrieval failures degrade to an empty context rather than an error.
    """
    text, matches = build_context(req.query, req.k)
    return {
        "context": text,
        "sources": [match.model_dump() for match in matches],
    }
