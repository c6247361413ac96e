import pytest
from pydantic import ValidationError

from ragsync.ingestion.errors import ConfigurationError
from ragsync.ingestion.models import (
    ConnectorCreate,
    ConnectorOut,
    IssueTrackerConfig,
    RepositoryConfig,
    SourceKind,
    SyncResult,
    SyncStatus,
    mask_config,
    parse_config,
)


@pytest.mark.parametrize(
    "alias, expected",
    [
        ("github", SourceKind.REPOSITORY),
        ("Jira", SourceKind.ISSUE_TRACKER),
        ("url", SourceKind.WEB_URL),
        ("manual", SourceKind.MANUAL_TEXT),
        ("issue-tracker", SourceKind.ISSUE_TRACKER),
    ],
)
def test_source_kind_aliases(alias, expected):
    assert SourceKind(alias) is expected


def test_unknown_source_kind_rejected():
    with pytest.raises(ValueError):
        SourceKind("ftp")


def test_repository_config_normalises_repo():
    config = parse_config(SourceKind.REPOSITORY, {"repo": "/acme/widgets/"})
    assert isinstance(config, RepositoryConfig)
    assert config.repo == "acme/widgets"


@pytest.mark.parametrize("repo", ["acme", "acme/", "acme/widgets/extra"])
def test_repository_config_requires_owner_and_name(repo):
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config(SourceKind.REPOSITORY, {"repo": repo})
    assert "repository" in str(excinfo.value)


def test_issue_tracker_config_requires_credentials():
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config(
            SourceKind.ISSUE_TRACKER,
            {"base_url": "https://acme.atlassian.net", "project_key": "OPS"},
        )
    message = str(excinfo.value)
    assert "email" in message
    assert "api_token" in message


def test_issue_tracker_config_strips_trailing_slash():
    config = parse_config(
        SourceKind.ISSUE_TRACKER,
        {
            "base_url": "https://acme.atlassian.net/",
            "email": "ops@acme.test",
            "api_token": "t0k3n",
            "project_key": "OPS",
        },
    )
    assert isinstance(config, IssueTrackerConfig)
    assert config.base_url == "https://acme.atlassian.net"


def test_web_url_config_requires_http_scheme():
    with pytest.raises(ConfigurationError):
        parse_config(SourceKind.WEB_URL, {"url": "ftp://example.com/file"})


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        parse_config(SourceKind.MANUAL_TEXT, {})


def test_connector_create_validates_config_for_kind():
    payload = ConnectorCreate(
        name="Handbook", source_kind="manual", config={"text": "Hello there, team."}
    )
    assert payload.source_kind is SourceKind.MANUAL_TEXT

    with pytest.raises(ValidationError):
        ConnectorCreate(name="Repo", source_kind="github", config={})


def test_connector_create_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        ConnectorCreate(
            name="Docs",
            source_kind="web-url",
            config={"url": "https://example.com"},
            sync_status="success",
        )


def test_mask_config_hides_secrets():
    masked = mask_config({"repo": "acme/widgets", "pat": "ghp_secret", "token": ""})
    assert masked == {"repo": "acme/widgets", "pat": "***", "token": ""}


def test_connector_out_masks_config(make_connector):
    connector = make_connector(
        "issue-tracker",
        {
            "base_url": "https://acme.atlassian.net",
            "email": "ops@acme.test",
            "api_token": "t0k3n",
            "project_key": "OPS",
        },
    )
    out = ConnectorOut.from_connector(connector)
    assert out.config["api_token"] == "***"
    assert out.config["email"] == "ops@acme.test"
    assert connector.config["api_token"] == "t0k3n"


def test_sync_result_success_property():
    assert SyncResult(connector_id=1, status=SyncStatus.SUCCESS, documents_count=3).success
    assert not SyncResult(connector_id=1, status=SyncStatus.ERROR, error="boom").success
