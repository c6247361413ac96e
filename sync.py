"""Command line entry point for connector syncs.

Examples::

    python sync.py --connector-id 3
    python sync.py --connector-id 3 --connector-id 7
    python sync.py --all

Exits with status 1 when any requested sync failed or could not start.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from ragsync.ingestion import service as _service
from ragsync.ingestion.errors import ConnectorNotFoundError, SyncInProgressError
from ragsync.ingestion.models import SyncResult


def _report(result: SyncResult, log: logging.Logger) -> None:
    if result.success:
        log.info("connector %s: synced %d chunk(s)", result.connector_id, result.documents_count)
    else:
        log.error("connector %s: sync failed: %s", result.connector_id, result.error)


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and run the requested syncs sequentially."""

    load_dotenv()
    parser = argparse.ArgumentParser(description="Sync connectors into the vector store")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--connector-id",
        dest="connector_ids",
        type=int,
        action="append",
        help="Connector to sync (may be specified multiple times)",
    )
    group.add_argument(
        "--all",
        action="store_true",
        help="Sync every active connector",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    log = logging.getLogger("sync")

    svc = _service.get_service()
    ok = True
    if args.all:
        results = svc.sync_active_connectors()
        if not results:
            log.info("no active connectors to sync")
        for result in results:
            _report(result, log)
            ok = ok and result.success
        return 0 if ok else 1

    for connector_id in args.connector_ids:
        try:
            result = svc.sync_connector(connector_id)
        except (ConnectorNotFoundError, SyncInProgressError) as exc:
            log.error("connector %s: %s", connector_id, exc)
            ok = False
            continue
        _report(result, log)
        ok = ok and result.success
    return 0 if ok else 1


if __name__ == "__main__":  # pragma: no cover - CLI execution
    sys.exit(main())
