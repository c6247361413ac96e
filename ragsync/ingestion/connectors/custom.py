"""Custom connector for a single web page or manually pasted text."""

from __future__ import annotations

import logging

import requests

from ...__version__ import __version__
from ..chunking import chunk_text, looks_structured
from ..errors import ConfigurationError, SourceError
from ..models import Connector, ManualTextConfig, SourceKind, WebUrlConfig, parse_config
from ..parsers import extract_html_text
from . import ConnectorChunk, base_metadata, default_timeout

MIN_CONTENT_CHARS = 20
USER_AGENT = f"ragsync/{__version__} (+connector-sync)"


class CustomConnector:
    """Index the text behind a URL (``web-url``) or given inline (``manual-text``)."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
        timeout: float | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(__name__)
        self.timeout = timeout if timeout is not None else default_timeout()

    def read_url(self, url: str) -> str:
        """Fetch ``url`` and return its text, stripping markup for HTML bodies."""

        try:
            response = self.session.get(
                url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise SourceError(f"url {url}", f"request failed: {exc}") from exc
        if not response.ok:
            raise SourceError(f"url {url}", f"failed to fetch: {response.status_code}")
        content_type = response.headers.get("content-type", "")
        body = response.text
        return extract_html_text(body) if "html" in content_type.lower() else body

    def fetch_chunks(self, connector: Connector) -> list[ConnectorChunk]:
        source_url: str | None = None
        if connector.source_kind == SourceKind.WEB_URL:
            config: WebUrlConfig = parse_config(SourceKind.WEB_URL, connector.config)
            raw_text = self.read_url(config.url)
            source_url = config.url
            source = f"url {config.url}"
        elif connector.source_kind == SourceKind.MANUAL_TEXT:
            manual: ManualTextConfig = parse_config(SourceKind.MANUAL_TEXT, connector.config)
            raw_text = manual.text
            source = f"manual text '{connector.name}'"
        else:
            raise ConfigurationError(
                f"custom connector cannot handle source kind {connector.source_kind.value}"
            )

        if len(raw_text.strip()) < MIN_CONTENT_CHARS:
            raise SourceError(source, "retrieved content is too short to be useful")

        chunks: list[ConnectorChunk] = []
        for idx, part in enumerate(chunk_text(raw_text, looks_structured(raw_text))):
            metadata = base_metadata(connector, idx)
            if source_url:
                metadata["source_url"] = source_url
            chunks.append(ConnectorChunk(content=part, metadata=metadata))
        return chunks


__all__ = ["CustomConnector", "USER_AGENT"]
