"""Configuration parsing and validation for the GitHub activity report."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Type, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import AuthenticationError, ConfigError
from .models import ActivitySources, AuthorMatchMode, Goal, GoalMetric, MonthlyGoals

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_TIMEOUT_SECONDS = 30

E = TypeVar("E", bound=Enum)

_POSITIVE_INT_PATTERN = re.compile(r"^[1-9][0-9]*$")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}

_GOAL_VARIABLES = {
    GoalMetric.CODE_CHANGES: "MONTHLY_CODE_CHANGES_GOAL",
    GoalMetric.PR_CREATION: "MONTHLY_PR_CREATION_GOAL",
    GoalMetric.PR_MERGE: "MONTHLY_PR_MERGE_GOAL",
}


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the activity report."""

    username: str
    owner: str
    goals: MonthlyGoals
    webhook_url: str
    token: str
    debug: bool = False
    sources: ActivitySources = ActivitySources.PERSONAL_OWNED
    author_match: AuthorMatchMode = AuthorMatchMode.IDENTITY
    timezone: str = "UTC"
    graphql_url: str = DEFAULT_GRAPHQL_URL
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _read(environ: Mapping[str, str], name: str) -> str:
    return environ.get(name, "").strip()


def _require(environ: Mapping[str, str], name: str) -> str:
    value = _read(environ, name)
    if not value:
        raise ConfigError(f"Missing required setting '{name}'.")
    return value


def _positive_int(environ: Mapping[str, str], name: str, default: Optional[int] = None) -> int:
    """Read a setting that must be a positive integer without sign or leading zeros."""
    value = _read(environ, name)
    if not value and default is not None:
        return default
    if not value:
        raise ConfigError(f"Missing required setting '{name}'.")
    if not _POSITIVE_INT_PATTERN.match(value):
        raise ConfigError(f"Invalid value for '{name}': expected a positive integer, got '{value}'.")
    return int(value)


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid value for '{name}': expected a boolean, got '{value}'.")


def _parse_choice(name: str, value: str, enum_type: Type[E]) -> E:
    try:
        return enum_type(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"Invalid value for '{name}': expected one of {choices}, got '{value}'.") from exc


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    *,
    username: Optional[str] = None,
    owner: Optional[str] = None,
    sources: Optional[str] = None,
    author_match: Optional[str] = None,
    debug: Optional[bool] = None,
) -> Config:
    """Build and validate application configuration.

    Values passed as keyword arguments (from the command line) take precedence
    over the environment.

    Args:
        environ: Environment mapping; defaults to ``os.environ``.
        username: Target GitHub login.
        owner: Owner whose repositories count as "owned"; defaults to the username.
        sources: Commit views to combine, see :class:`ActivitySources`.
        author_match: Identity matching mode, see :class:`AuthorMatchMode`.
        debug: Enables diagnostic logging.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigError: If a required setting is missing or malformed.
        AuthenticationError: If neither ``GITHUB_TOKEN`` nor ``GH_PAT`` is set.
    """
    env: Mapping[str, str] = os.environ if environ is None else environ

    resolved_username = (username or "").strip() or _require(env, "USERNAME")
    resolved_owner = (owner or "").strip() or _read(env, "REPO_OWNER") or resolved_username

    goals = MonthlyGoals(
        code_changes=Goal(GoalMetric.CODE_CHANGES, _positive_int(env, _GOAL_VARIABLES[GoalMetric.CODE_CHANGES])),
        pr_creation=Goal(GoalMetric.PR_CREATION, _positive_int(env, _GOAL_VARIABLES[GoalMetric.PR_CREATION])),
        pr_merge=Goal(GoalMetric.PR_MERGE, _positive_int(env, _GOAL_VARIABLES[GoalMetric.PR_MERGE])),
    )

    webhook_url = _require(env, "SLACK_WEBHOOK_URL")
    if not webhook_url.startswith(("https://", "http://")):
        raise ConfigError("Invalid value for 'SLACK_WEBHOOK_URL': expected an http(s) URL.")

    resolved_debug = debug or _parse_bool("DEBUG", env.get("DEBUG", ""))

    resolved_sources = _parse_choice(
        "ACTIVITY_SOURCES",
        sources or _read(env, "ACTIVITY_SOURCES") or ActivitySources.PERSONAL_OWNED.value,
        ActivitySources,
    )
    resolved_author_match = _parse_choice(
        "AUTHOR_MATCH",
        author_match or _read(env, "AUTHOR_MATCH") or AuthorMatchMode.IDENTITY.value,
        AuthorMatchMode,
    )

    timezone_name = _read(env, "REPORT_TIMEZONE") or "UTC"
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Invalid value for 'REPORT_TIMEZONE': unknown time zone '{timezone_name}'.") from exc

    graphql_url = _read(env, "GITHUB_GRAPHQL_URL") or DEFAULT_GRAPHQL_URL
    timeout_seconds = _positive_int(env, "REQUEST_TIMEOUT_SECONDS", default=DEFAULT_TIMEOUT_SECONDS)

    token = _read(env, "GITHUB_TOKEN") or _read(env, "GH_PAT")
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' (or 'GH_PAT') environment variable before running the report."
        )

    return Config(
        username=resolved_username,
        owner=resolved_owner,
        goals=goals,
        webhook_url=webhook_url,
        token=token,
        debug=resolved_debug,
        sources=resolved_sources,
        author_match=resolved_author_match,
        timezone=timezone_name,
        graphql_url=graphql_url,
        timeout_seconds=timeout_seconds,
    )
