"""Issue-tracker connector that turns Jira issues into searchable chunks."""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..chunking import chunk_text
from ..errors import SourceError
from ..models import Connector, IssueTrackerConfig, SourceKind, parse_config
from . import ConnectorChunk, base_metadata, default_timeout

MAX_RESULTS = 50
SEARCH_PATH = "/rest/api/3/search/jql"
SEARCH_FIELDS = "summary,description,status,assignee,issuetype,priority"

_ADF_BLOCK_TYPES = {
    "blockquote",
    "bulletList",
    "codeBlock",
    "heading",
    "listItem",
    "mediaSingle",
    "orderedList",
    "panel",
    "paragraph",
    "rule",
    "tableCell",
    "tableHeader",
    "tableRow",
}


def _adf_text(node: Any) -> str:
    if not isinstance(node, dict):
        return ""
    node_type = node.get("type")
    if node_type == "text":
        return node.get("text") or ""
    if node_type == "hardBreak":
        return "\n"
    if node_type in {"mention", "emoji", "inlineCard"}:
        attrs = node.get("attrs") or {}
        return attrs.get("text") or attrs.get("url") or ""
    inner = "".join(_adf_text(child) for child in node.get("content") or [])
    if node_type in _ADF_BLOCK_TYPES:
        return inner + "\n"
    return inner


def extract_description(description: Any) -> str:
    """Flatten a plain string or an Atlassian Document Format tree to text."""

    if not description:
        return ""
    if isinstance(description, str):
        return description.strip()
    lines = (line.strip() for line in _adf_text(description).splitlines())
    return "\n".join(line for line in lines if line)


def _name(value: Any, attr: str = "name") -> str | None:
    if isinstance(value, dict):
        return value.get(attr)
    return None


class IssueTrackerConnector:
    """Run a JQL search and emit one content block per returned issue."""

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

    @staticmethod
    def build_jql(config: IssueTrackerConfig) -> str:
        return config.jql or f"project = {config.project_key} ORDER BY updated DESC"

    def search(self, config: IssueTrackerConfig) -> list[dict[str, Any]]:
        """Return raw issue payloads for the configured query."""

        source = f"issue tracker {config.base_url}"
        params = {
            "jql": self.build_jql(config),
            "fields": SEARCH_FIELDS,
            "maxResults": min(config.max_results or MAX_RESULTS, MAX_RESULTS),
        }
        try:
            response = self.session.get(
                f"{config.base_url}{config.search_path or SEARCH_PATH}",
                params=params,
                auth=(config.email, config.api_token),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise SourceError(source, f"request failed: {exc}") from exc
        if response.status_code in (401, 403):
            raise SourceError(source, f"authentication failed ({response.status_code})")
        if not response.ok:
            raise SourceError(
                source, f"API error {response.status_code}: {response.text[:200]}"
            )
        payload = response.json()
        issues = payload.get("issues") if isinstance(payload, dict) else None
        if issues is None:
            raise SourceError(source, "search response has no 'issues' list")
        return list(issues)

    @staticmethod
    def render_issue(issue: dict[str, Any]) -> tuple[str, dict[str, str]]:
        """Build the text block for ``issue`` and the fields reused as metadata."""

        fields = issue.get("fields") or {}
        status = _name(fields.get("status")) or "Unknown"
        assignee = _name(fields.get("assignee"), "displayName") or "Unassigned"
        issue_type = _name(fields.get("issuetype")) or ""
        priority = _name(fields.get("priority")) or ""
        description = extract_description(fields.get("description"))

        content = f"[{issue.get('key')}] {fields.get('summary') or ''}".rstrip()
        if description:
            content += f"\n{description}"
        content += (
            f"\nType: {issue_type} | Status: {status} | "
            f"Priority: {priority} | Assignee: {assignee}"
        )
        return content, {"status": status, "assignee": assignee}

    def fetch_chunks(self, connector: Connector) -> list[ConnectorChunk]:
        config: IssueTrackerConfig = parse_config(SourceKind.ISSUE_TRACKER, connector.config)
        issues = self.search(config)
        self.logger.info("issue tracker %s: %d issue(s)", config.project_key, len(issues))

        chunks: list[ConnectorChunk] = []
        for issue in issues:
            key = issue.get("key")
            content, extras = self.render_issue(issue)
            # Issues are normally chunk-sized, so this yields a single chunk.
            for idx, part in enumerate(chunk_text(content, True)):
                metadata = base_metadata(connector, idx)
                metadata.update(
                    {
                        "source_url": f"{config.base_url}/browse/{key}",
                        "issue_key": key,
                        "project_key": config.project_key,
                        **extras,
                    }
                )
                chunks.append(ConnectorChunk(content=part, metadata=metadata))
        return chunks


__all__ = ["IssueTrackerConnector", "extract_description"]
