from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

from ragsync.ingestion.connectors.custom import USER_AGENT, CustomConnector
from ragsync.ingestion.errors import ConfigurationError, SourceError


class _FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200, content_type: str = "text/html"):
        self.text = text
        self.status_code = status_code
        self.headers = {"content-type": content_type}

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class _FakeSession:
    def __init__(self, response: _FakeResponse):
        self._response = response
        self.requests: List[Dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append({"url": url, **kwargs})
        return self._response


PAGE = """
<html><head><title>Team handbook</title><script>track()</script></head>
<body><main><p>Deploys happen on Tuesdays after the review meeting.</p></main></body></html>
"""


def test_web_url_strips_html(make_connector):
    session = _FakeSession(_FakeResponse(PAGE, content_type="text/html; charset=utf-8"))
    connector = CustomConnector(session=session, timeout=3)
    record = make_connector("url", {"url": "https://handbook.test/deploys"})

    chunks = connector.fetch_chunks(record)

    assert len(chunks) == 1
    assert chunks[0].content == (
        "Team handbook\nDeploys happen on Tuesdays after the review meeting."
    )
    assert chunks[0].metadata["source_url"] == "https://handbook.test/deploys"
    assert chunks[0].metadata["source_kind"] == "web-url"
    assert session.requests[0]["headers"] == {"User-Agent": USER_AGENT}
    assert session.requests[0]["timeout"] == 3


def test_web_url_plain_body_is_kept_verbatim(make_connector):
    body = "## Notes\nThe staging database is rebuilt every night."
    session = _FakeSession(_FakeResponse(body, content_type="text/markdown"))
    connector = CustomConnector(session=session)

    chunks = connector.fetch_chunks(make_connector("web-url", {"url": "https://x.test/notes.md"}))

    assert [c.content for c in chunks] == [body]


def test_web_url_error_status(make_connector):
    session = _FakeSession(_FakeResponse("nope", status_code=503))
    connector = CustomConnector(session=session)

    with pytest.raises(SourceError, match="503"):
        connector.fetch_chunks(make_connector("web-url", {"url": "https://down.test"}))


def test_web_url_network_failure(make_connector):
    class _BrokenSession:
        def get(self, url, **kwargs):
            raise requests.Timeout("read timed out")

    connector = CustomConnector(session=_BrokenSession())

    with pytest.raises(SourceError) as excinfo:
        connector.fetch_chunks(make_connector("web-url", {"url": "https://slow.test"}))
    assert str(excinfo.value).startswith("url https://slow.test: ")


def test_manual_text_structured(make_connector):
    text = (
        "## Architecture\nThe API talks to Postgres through psycopg.\n\n"
        "## Operations\nBackups run nightly and are kept for a week."
    )
    connector = CustomConnector(session=_FakeSession(_FakeResponse()))

    chunks = connector.fetch_chunks(make_connector("manual", {"text": text}))

    assert [c.content.splitlines()[0] for c in chunks] == ["## Architecture", "## Operations"]
    assert [c.metadata["chunk_index"] for c in chunks] == [0, 1]
    assert all("source_url" not in c.metadata for c in chunks)


def test_manual_text_too_short(make_connector):
    session = _FakeSession(_FakeResponse())
    connector = CustomConnector(session=session)

    with pytest.raises(SourceError, match="too short"):
        connector.fetch_chunks(make_connector("manual-text", {"text": "   tiny note  "}))
    assert session.requests == []


def test_custom_connector_rejects_other_kinds(make_connector):
    connector = CustomConnector(session=_FakeSession(_FakeResponse()))
    record = make_connector("repository", {"repo": "acme/widgets"})

    with pytest.raises(ConfigurationError):
        connector.fetch_chunks(record)
