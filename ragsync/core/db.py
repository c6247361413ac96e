"""Connection helpers for the PostgreSQL/pgvector record store."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import psycopg
from pgvector.psycopg import register_vector

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "schema.sql"

_initialised: set[str] = set()


def get_database_url() -> str:
    """Return ``DATABASE_URL`` or a DSN assembled from the ``PG*`` variables."""

    url = os.getenv("DATABASE_URL")
    if url:
        return url
    return (
        f"host={os.getenv('PGHOST', 'localhost')} "
        f"port={os.getenv('PGPORT', '5432')} "
        f"dbname={os.getenv('PGDATABASE', 'ragsync')} "
        f"user={os.getenv('PGUSER', 'ragsync')} "
        f"password={os.getenv('PGPASSWORD', 'ragsync')}"
    )


def ensure_schema(conn: psycopg.Connection, schema_sql_path: Path = SCHEMA_PATH) -> None:
    """Create the tables if missing. Safe to call repeatedly."""

    with conn.cursor() as cur:
        cur.execute(schema_sql_path.read_text(encoding="utf-8"))
    conn.commit()


@contextmanager
def connect(db_url: str | None = None) -> Iterator[psycopg.Connection]:
    """Open a connection, ensure the schema once per process, register pgvector.

    The transaction is committed when the block exits cleanly and rolled back
    otherwise; the connection is always closed.
    """

    url = db_url or get_database_url()
    with psycopg.connect(url) as conn:
        if url not in _initialised:
            ensure_schema(conn)
            _initialised.add(url)
            logger.debug("schema ensured")
        register_vector(conn)
        yield conn


__all__ = ["SCHEMA_PATH", "connect", "ensure_schema", "get_database_url"]
