"""Threaded sync runner with at most one in-flight job per connector."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any


class SyncRunner:
    """Simple wrapper around :class:`ThreadPoolExecutor` to manage sync jobs.

    Jobs are keyed by connector id. Submitting a job for a connector whose
    previous job has not finished returns the pending future instead of
    starting a second one. Finished jobs are forgotten on the next submit.
    """

    def __init__(self, max_workers: int = 4):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sync")
        self._futures: dict[int, Future] = {}
        self._lock = Lock()

    # Worker function signature
    Worker = Callable[[], Any]

    def submit(self, connector_id: int, fn: Worker) -> Future:
        """Submit a job unless one is already in flight for ``connector_id``."""
        with self._lock:
            pending = self._futures.get(connector_id)
            if pending is not None and not pending.done():
                return pending
            self._prune()
            future = self.executor.submit(fn)
            self._futures[connector_id] = future
            return future

    def _prune(self) -> None:
        # caller holds self._lock
        for cid in [cid for cid, fut in self._futures.items() if fut.done()]:
            del self._futures[cid]

    def is_running(self, connector_id: int) -> bool:
        fut = self._futures.get(connector_id)
        return fut is not None and not fut.done()

    def clear(self, connector_id: int) -> None:
        """Remove references for a finished job."""
        with self._lock:
            fut = self._futures.get(connector_id)
            if fut is not None and fut.done():
                self._futures.pop(connector_id, None)

    def get(self, connector_id: int) -> Future | None:
        return self._futures.get(connector_id)

    def list(self) -> Iterable[int]:
        return list(self._futures)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
