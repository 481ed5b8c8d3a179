"""Tests for configuration loading and validation."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from activity_report.config import DEFAULT_GRAPHQL_URL, load_config
from activity_report.errors import AuthenticationError, ConfigError
from activity_report.models import ActivitySources, AuthorMatchMode


def _environ(**overrides: str) -> dict:
    environ = {
        "USERNAME": "alice",
        "MONTHLY_CODE_CHANGES_GOAL": "1000",
        "MONTHLY_PR_CREATION_GOAL": "10",
        "MONTHLY_PR_MERGE_GOAL": "5",
        "SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/T000/B000/XXXX",
        "GITHUB_TOKEN": "ghp-token",
    }
    environ.update(overrides)
    return environ


def test_load_config_with_valid_environment():
    """Verify a complete environment yields a config with defaults for optional settings."""
    config = load_config(_environ())

    assert config.username == "alice"
    assert config.owner == "alice"
    assert config.goals.code_changes.target == 1000
    assert config.goals.pr_creation.target == 10
    assert config.goals.pr_merge.target == 5
    assert config.token == "ghp-token"
    assert config.debug is False
    assert config.sources is ActivitySources.PERSONAL_OWNED
    assert config.author_match is AuthorMatchMode.IDENTITY
    assert config.timezone == "UTC"
    assert config.graphql_url == DEFAULT_GRAPHQL_URL
    assert config.timeout_seconds == 30


def test_load_config_owner_override_and_cli_precedence():
    """Verify REPO_OWNER overrides the owner and keyword arguments override the environment."""
    config = load_config(
        _environ(REPO_OWNER="acme", ACTIVITY_SOURCES="owned"),
        username="bob",
        sources="personal+owned+org",
        author_match="email",
        debug=True,
    )

    assert config.username == "bob"
    assert config.owner == "acme"
    assert config.sources is ActivitySources.PERSONAL_OWNED_ORG
    assert config.author_match is AuthorMatchMode.EMAIL
    assert config.debug is True


@pytest.mark.parametrize(
    "variable",
    ["USERNAME", "MONTHLY_CODE_CHANGES_GOAL", "MONTHLY_PR_CREATION_GOAL", "MONTHLY_PR_MERGE_GOAL", "SLACK_WEBHOOK_URL"],
)
def test_load_config_missing_required_setting_names_variable(variable):
    """Verify each missing required setting raises ConfigError naming that setting."""
    environ = _environ()
    del environ[variable]

    with pytest.raises(ConfigError, match=variable):
        load_config(environ)


@pytest.mark.parametrize("value", ["0", "-5", "012", "1.5", "ten", " "])
def test_load_config_rejects_malformed_goal(value):
    """Verify goals must be positive integers without sign, decimals or leading zeros."""
    with pytest.raises(ConfigError, match="MONTHLY_PR_MERGE_GOAL"):
        load_config(_environ(MONTHLY_PR_MERGE_GOAL=value))


def test_load_config_rejects_non_http_webhook():
    """Verify the webhook target must be an http(s) URL."""
    with pytest.raises(ConfigError, match="SLACK_WEBHOOK_URL"):
        load_config(_environ(SLACK_WEBHOOK_URL="hooks.slack.com/services/x"))


def test_load_config_missing_token_raises_authentication_error():
    """Verify a missing token raises AuthenticationError, which is also a ConfigError."""
    environ = _environ()
    del environ["GITHUB_TOKEN"]

    with pytest.raises(AuthenticationError) as exc_info:
        load_config(environ)

    assert isinstance(exc_info.value, ConfigError)


def test_load_config_falls_back_to_gh_pat():
    """Verify GH_PAT is used when GITHUB_TOKEN is not set."""
    environ = _environ(GH_PAT="pat-token")
    del environ["GITHUB_TOKEN"]

    assert load_config(environ).token == "pat-token"


@pytest.mark.parametrize(
    "overrides, variable",
    [
        ({"ACTIVITY_SOURCES": "everything"}, "ACTIVITY_SOURCES"),
        ({"AUTHOR_MATCH": "fuzzy"}, "AUTHOR_MATCH"),
        ({"DEBUG": "maybe"}, "DEBUG"),
        ({"REPORT_TIMEZONE": "Mars/Olympus"}, "REPORT_TIMEZONE"),
        ({"REQUEST_TIMEOUT_SECONDS": "0"}, "REQUEST_TIMEOUT_SECONDS"),
    ],
)
def test_load_config_rejects_invalid_optional_settings(overrides, variable):
    """Verify malformed optional settings are rejected with the setting name."""
    with pytest.raises(ConfigError, match=variable):
        load_config(_environ(**overrides))


def test_load_config_parses_debug_and_timezone():
    """Verify DEBUG accepts common truthy spellings and REPORT_TIMEZONE is kept."""
    config = load_config(_environ(DEBUG="TRUE", REPORT_TIMEZONE="Asia/Tokyo"))

    assert config.debug is True
    assert config.timezone == "Asia/Tokyo"
    assert config.tzinfo.key == "Asia/Tokyo"


@pytest.mark.parametrize("flag", [None, False])
def test_load_config_reads_debug_from_environment_unless_flag_is_set(flag):
    """Verify an unset or false --debug flag falls back to the DEBUG variable."""
    assert load_config(_environ(DEBUG="1"), debug=flag).debug is True
    assert load_config(_environ(), debug=flag).debug is False
