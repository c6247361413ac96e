"""Repository connector that walks a GitHub repository and chunks its files."""

from __future__ import annotations

import base64
import logging
import os
from typing import Any
from urllib.parse import quote

import requests

from ..chunking import chunk_text
from ..errors import SourceError
from ..models import Connector, RepositoryConfig, SourceKind, parse_config
from . import ConnectorChunk, base_metadata, default_timeout

SUPPORTED_EXTENSIONS = {".md", ".txt", ".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".rs"}
PROSE_EXTENSIONS = {".md", ".txt"}
SKIPPED_DIRECTORIES = {"node_modules", "vendor", "bower_components", "venv", "__pycache__"}
MAX_FILES = 50
MIN_FILE_CHARS = 30


def _extension(name: str) -> str:
    _, dot, ext = name.rpartition(".")
    return f".{ext.lower()}" if dot else ""


class RepositoryConnector:
    """Collect text/code files from a repository via the GitHub contents API.

    The walk is depth-first in listing order, skips hidden and vendor
    directories, keeps only :data:`SUPPORTED_EXTENSIONS` and stops after
    ``max_files`` files so a sync stays bounded in time and cost.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        max_files: int = MAX_FILES,
    ) -> None:
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)
        self.api_url = (api_url or os.getenv("GITHUB_API_URL", "https://api.github.com")).rstrip("/")
        self.timeout = timeout if timeout is not None else default_timeout()
        self.max_files = max_files

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _headers(pat: str | None) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if pat:
            headers["Authorization"] = f"Bearer {pat}"
        return headers

    def _get(self, url: str, config: RepositoryConfig, **kwargs: Any) -> requests.Response:
        try:
            return self.session.get(
                url, headers=self._headers(config.pat), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise SourceError(f"repository {config.repo}", f"request failed: {exc}") from exc

    def _list_contents(self, config: RepositoryConfig, path: str) -> list[dict[str, Any]]:
        url = f"{self.api_url}/repos/{config.repo}/contents/{quote(path)}"
        params = {"ref": config.ref} if config.ref else None
        response = self._get(url, config, params=params)
        source = f"repository {config.repo}"
        if response.status_code == 404:
            if not path:
                raise SourceError(source, "repository not found or not accessible (404)")
            self.logger.warning("repository %s has no path %r, skipping", config.repo, path)
            return []
        if response.status_code in (401, 403):
            raise SourceError(source, f"authentication failed ({response.status_code})")
        if not response.ok:
            raise SourceError(source, f"API error {response.status_code} for '{path or '/'}'")
        data = response.json()
        return data if isinstance(data, list) else [data]

    def _collect_files(
        self,
        config: RepositoryConfig,
        path: str,
        collected: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        if len(collected) >= self.max_files:
            return collected
        for item in self._list_contents(config, path):
            if len(collected) >= self.max_files:
                break
            name = item.get("name") or ""
            if item.get("type") == "dir":
                if name.startswith(".") or name in SKIPPED_DIRECTORIES:
                    continue
                self._collect_files(config, item.get("path") or name, collected)
            elif item.get("type") == "file" and _extension(name) in SUPPORTED_EXTENSIONS:
                collected.append(item)
        return collected

    def _fetch_file_content(self, config: RepositoryConfig, item: dict[str, Any]) -> str | None:
        source = f"repository {config.repo}"
        response = self._get(item["url"], config)
        if not response.ok:
            raise SourceError(source, f"failed to fetch {item.get('path')}: {response.status_code}")
        data = response.json()
        if data.get("encoding") == "base64" and data.get("content"):
            raw = base64.b64decode(data["content"].replace("\n", ""))
            return raw.decode("utf-8", errors="replace")
        download_url = data.get("download_url")
        if download_url:
            raw_response = self._get(download_url, config)
            if not raw_response.ok:
                raise SourceError(
                    source, f"failed to download {item.get('path')}: {raw_response.status_code}"
                )
            return raw_response.text
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_files(self, config: RepositoryConfig) -> list[dict[str, Any]]:
        """Return the file entries selected for indexing, in walk order."""

        collected: list[dict[str, Any]] = []
        for root in config.paths or [""]:
            self._collect_files(config, root.strip("/"), collected)
            if len(collected) >= self.max_files:
                break
        return collected

    def fetch_chunks(self, connector: Connector) -> list[ConnectorChunk]:
        config: RepositoryConfig = parse_config(SourceKind.REPOSITORY, connector.config)
        files = self.list_files(config)
        self.logger.info("repository %s: %d candidate file(s)", config.repo, len(files))

        chunks: list[ConnectorChunk] = []
        for item in files:
            content = self._fetch_file_content(config, item)
            if not content or len(content.strip()) < MIN_FILE_CHARS:
                continue

            path = item.get("path") or item.get("name")
            is_prose = _extension(item.get("name") or "") in PROSE_EXTENSIONS
            source_url = f"https://github.com/{config.repo}/blob/{config.ref or 'HEAD'}/{path}"
            for idx, part in enumerate(chunk_text(content, is_prose)):
                metadata = base_metadata(connector, idx)
                metadata.update(
                    {
                        "source_url": source_url,
                        "repo": config.repo,
                        "file_path": path,
                    }
                )
                chunks.append(
                    ConnectorChunk(content=f"[{config.repo}] {path}\n\n{part}", metadata=metadata)
                )
        return chunks


__all__ = ["RepositoryConnector", "MAX_FILES", "SUPPORTED_EXTENSIONS"]
