"""Pydantic models and enums for connectors, chunks and sync results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import ConfigurationError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SourceKind(str, Enum):
    """Kinds of content sources a connector may point at."""

    REPOSITORY = "repository"
    ISSUE_TRACKER = "issue-tracker"
    WEB_URL = "web-url"
    MANUAL_TEXT = "manual-text"

    @classmethod
    def _missing_(cls, value: object) -> "SourceKind | None":
        if isinstance(value, str):
            return _SOURCE_KIND_ALIASES.get(value.strip().lower())
        return None


_SOURCE_KIND_ALIASES = {
    "github": SourceKind.REPOSITORY,
    "jira": SourceKind.ISSUE_TRACKER,
    "issue_tracker": SourceKind.ISSUE_TRACKER,
    "url": SourceKind.WEB_URL,
    "web_url": SourceKind.WEB_URL,
    "manual": SourceKind.MANUAL_TEXT,
    "manual_text": SourceKind.MANUAL_TEXT,
}


class SyncStatus(str, Enum):
    """Lifecycle status values for a connector sync."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


SECRET_CONFIG_KEYS = {"pat", "api_token", "token", "password"}


# ---------------------------------------------------------------------------
# Kind-specific configuration
# ---------------------------------------------------------------------------


class RepositoryConfig(BaseModel):
    """``config`` payload for :attr:`SourceKind.REPOSITORY`."""

    repo: str
    pat: str | None = None
    paths: List[str] | None = None
    ref: str | None = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _check_repo(self) -> "RepositoryConfig":
        owner, _, name = self.repo.strip().strip("/").partition("/")
        if not owner or not name or "/" in name:
            raise ValueError("repo must look like 'owner/name'")
        self.repo = f"{owner}/{name}"
        return self


class IssueTrackerConfig(BaseModel):
    """``config`` payload for :attr:`SourceKind.ISSUE_TRACKER`."""

    base_url: str
    email: str
    api_token: str
    project_key: str
    jql: str | None = None
    max_results: int | None = Field(default=None, ge=1)
    search_path: str | None = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _check_required(self) -> "IssueTrackerConfig":
        for name in ("base_url", "email", "api_token", "project_key"):
            if not getattr(self, name).strip():
                raise ValueError(f"{name} must not be empty")
        self.base_url = self.base_url.rstrip("/")
        if self.search_path is not None:
            self.search_path = "/" + self.search_path.strip().lstrip("/")
        return self


class WebUrlConfig(BaseModel):
    """``config`` payload for :attr:`SourceKind.WEB_URL`."""

    url: str

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _check_url(self) -> "WebUrlConfig":
        if not self.url.startswith(("http://", "https://")):
            raise ValueError("url must be an http(s) URL")
        return self


class ManualTextConfig(BaseModel):
    """``config`` payload for :attr:`SourceKind.MANUAL_TEXT`."""

    text: str

    model_config = ConfigDict(extra="ignore")


CONFIG_MODELS: Dict[SourceKind, type[BaseModel]] = {
    SourceKind.REPOSITORY: RepositoryConfig,
    SourceKind.ISSUE_TRACKER: IssueTrackerConfig,
    SourceKind.WEB_URL: WebUrlConfig,
    SourceKind.MANUAL_TEXT: ManualTextConfig,
}


def parse_config(kind: SourceKind, config: Dict[str, Any] | None) -> Any:
    """Validate ``config`` for ``kind`` or raise :class:`ConfigurationError`."""

    model = CONFIG_MODELS[kind]
    try:
        return model.model_validate(config or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(
            f"invalid {kind.value} connector config ({problems})"
        ) from exc


def mask_config(config: Dict[str, Any] | None) -> Dict[str, Any]:
    """Return a copy of ``config`` with secret values replaced by ``***``."""

    return {
        key: ("***" if key.lower() in SECRET_CONFIG_KEYS and value else value)
        for key, value in (config or {}).items()
    }


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Connector(BaseModel):
    """A configured content source plus its sync state."""

    id: int
    name: str
    source_kind: SourceKind
    config: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    sync_status: SyncStatus = SyncStatus.IDLE
    sync_error: str | None = None
    documents_count: int = 0
    last_synced_at: datetime | None = None
    sync_generation: int = 0
    sync_started_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConnectorCreate(BaseModel):
    """Payload used to create a connector."""

    name: str = Field(min_length=1)
    source_kind: SourceKind
    config: Dict[str, Any]
    is_active: bool = True

    model_config = ConfigDict(extra="forbid")

    @field_validator("source_kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return SourceKind(value)
        return value

    @model_validator(mode="after")
    def _validate_config(self) -> "ConnectorCreate":
        try:
            parse_config(self.source_kind, self.config)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        return self


class ConnectorUpdate(BaseModel):
    """Partial update for name, config or the active flag."""

    name: str | None = Field(default=None, min_length=1)
    config: Dict[str, Any] | None = None
    is_active: bool | None = None

    model_config = ConfigDict(extra="forbid")


class ConnectorOut(BaseModel):
    """Connector representation returned by the HTTP API."""

    id: int
    name: str
    source_kind: SourceKind
    config: Dict[str, Any]
    is_active: bool
    sync_status: SyncStatus
    sync_error: str | None = None
    documents_count: int
    last_synced_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_connector(cls, connector: Connector) -> "ConnectorOut":
        return cls(
            id=connector.id,
            name=connector.name,
            source_kind=connector.source_kind,
            config=mask_config(connector.config),
            is_active=connector.is_active,
            sync_status=connector.sync_status,
            sync_error=connector.sync_error,
            documents_count=connector.documents_count,
            last_synced_at=connector.last_synced_at,
            created_at=connector.created_at,
        )


class StoredChunk(BaseModel):
    """A persisted chunk as read back from the document store."""

    id: int
    connector_id: int
    position: int
    content: str
    metadata: Dict[str, Any]


class DocumentMatch(BaseModel):
    """A chunk returned by similarity search (higher score = closer)."""

    id: int
    connector_id: int
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    similarity: float


class SyncResult(BaseModel):
    """Outcome of one sync attempt."""

    connector_id: int
    status: SyncStatus
    documents_count: int = 0
    error: str | None = None
    last_synced_at: datetime | None = None

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.SUCCESS


T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    """Generic container for list responses."""

    items: List[T]
    total: int


class ContextRequest(BaseModel):
    """Request body for the retrieval endpoint."""

    query: str
    k: int = Field(default=5, ge=1, le=50)


__all__ = [
    "CONFIG_MODELS",
    "Connector",
    "ConnectorCreate",
    "ConnectorOut",
    "ConnectorUpdate",
    "ContextRequest",
    "DocumentMatch",
    "IssueTrackerConfig",
    "ListResponse",
    "ManualTextConfig",
    "RepositoryConfig",
    "SourceKind",
    "StoredChunk",
    "SyncResult",
    "SyncStatus",
    "WebUrlConfig",
    "mask_config",
    "parse_config",
]
