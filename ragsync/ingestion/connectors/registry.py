"""Lookup from :class:`SourceKind` to the adapter that serves it."""

from __future__ import annotations

from collections.abc import Callable

from ..models import SourceKind
from . import SourceAdapter
from .custom import CustomConnector
from .issue_tracker import IssueTrackerConnector
from .repository import RepositoryConnector

AdapterFactory = Callable[[], SourceAdapter]

_FACTORIES: dict[SourceKind, AdapterFactory] = {
    SourceKind.REPOSITORY: RepositoryConnector,
    SourceKind.ISSUE_TRACKER: IssueTrackerConnector,
    SourceKind.WEB_URL: CustomConnector,
    SourceKind.MANUAL_TEXT: CustomConnector,
}


def register_adapter(kind: SourceKind, factory: AdapterFactory) -> None:
    """Register (or replace) the adapter factory used for ``kind``."""

    _FACTORIES[kind] = factory


def default_adapters() -> dict[SourceKind, SourceAdapter]:
    """Instantiate one adapter per registered source kind."""

    instances: dict[AdapterFactory, SourceAdapter] = {}
    adapters: dict[SourceKind, SourceAdapter] = {}
    for kind, factory in _FACTORIES.items():
        if factory not in instances:
            instances[factory] = factory()
        adapters[kind] = instances[factory]
    return adapters


__all__ = ["AdapterFactory", "default_adapters", "register_adapter"]
