"""Exception types raised while syncing connectors."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every connector sync failure."""


class ConfigurationError(SyncError, ValueError):
    """Required connector configuration is missing or malformed."""


class SourceError(SyncError):
    """An upstream source failed or returned unusable content."""

    def __init__(self, source: str, cause: str):
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: {cause}")


class IndexingError(SyncError):
    """Embedding or persisting chunks failed."""


class NoContentError(SyncError):
    """The adapter succeeded but produced nothing worth indexing."""


class ConnectorNotFoundError(SyncError, LookupError):
    """No connector exists with the requested id."""

    def __init__(self, connector_id: int):
        self.connector_id = connector_id
        super().__init__(f"connector {connector_id} not found")


class SyncInProgressError(SyncError):
    """Another sync already holds the claim for this connector."""

    def __init__(self, connector_id: int):
        self.connector_id = connector_id
        super().__init__(f"connector {connector_id} is already syncing")


class SyncSupersededError(SyncError):
    """A newer sync claimed the connector before this one finished."""

    def __init__(self, connector_id: int, generation: int):
        self.connector_id = connector_id
        self.generation = generation
        super().__init__(
            f"sync generation {generation} of connector {connector_id} "
            "was superseded by a newer sync"
        )


__all__ = [
    "ConfigurationError",
    "ConnectorNotFoundError",
    "IndexingError",
    "NoContentError",
    "SourceError",
    "SyncError",
    "SyncInProgressError",
    "SyncSupersededError",
]
