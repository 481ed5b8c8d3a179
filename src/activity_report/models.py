"""Domain models for GitHub activity reporting.

These dataclasses intentionally model only the subset of GraphQL payload fields
that are required for line-change and pull-request counting. Field names of the
fetched records mirror the GitHub API names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ActivitySources(str, Enum):
    """Which commit views are fetched and combined for the line-change total."""

    OWNED = "owned"
    PERSONAL = "personal"
    PERSONAL_OWNED = "personal+owned"
    PERSONAL_OWNED_ORG = "personal+owned+org"

    @property
    def includes_personal(self) -> bool:
        return self is not ActivitySources.OWNED

    @property
    def includes_owned(self) -> bool:
        return self in (
            ActivitySources.OWNED,
            ActivitySources.PERSONAL_OWNED,
            ActivitySources.PERSONAL_OWNED_ORG,
        )

    @property
    def includes_organizations(self) -> bool:
        return self is ActivitySources.PERSONAL_OWNED_ORG

    @property
    def is_single_source(self) -> bool:
        return self in (ActivitySources.OWNED, ActivitySources.PERSONAL)


class AuthorMatchMode(str, Enum):
    """How a commit author is recognised as the target user."""

    IDENTITY = "identity"
    EMAIL = "email"


class RepositoryKind(str, Enum):
    """Where a repository was discovered from."""

    OWNED = "owned"
    ORGANIZATION = "organization"
    CONTRIBUTED = "contributed"


class GoalMetric(str, Enum):
    """Monthly goal metrics."""

    CODE_CHANGES = "code-changes"
    PR_CREATION = "pr-creation"
    PR_MERGE = "pr-merge"


class PRCountMode(str, Enum):
    """Which pull-request timestamp a count is based on."""

    CREATED = "created"
    MERGED = "merged"


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """A reporting interval from ``since`` to ``until``."""

    since: datetime
    until: datetime

    def __post_init__(self) -> None:
        if self.since > self.until:
            raise ValueError(
                f"Time window start {self.since.isoformat()} is after its end {self.until.isoformat()}."
            )


@dataclass(frozen=True, slots=True)
class ReportWindows:
    """The two windows evaluated on every run."""

    daily: TimeWindow
    monthly: TimeWindow

    @property
    def earliest_since(self) -> datetime:
        """Return the earliest start among both windows.

        Early in a month the trailing 24 hours reach back into the previous
        month, so the daily window is not always contained in the monthly one.
        """
        return min(self.daily.since, self.monthly.since)


@dataclass(frozen=True, slots=True)
class RepositorySource:
    """A repository to read commit history or pull requests from."""

    owner: str
    name: str
    kind: RepositoryKind

    @property
    def name_with_owner(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def counts_all_authors(self) -> bool:
        """Owned repositories count every commit; other repositories only the user's own."""
        return self.kind is RepositoryKind.OWNED


@dataclass(slots=True)
class CommitRecord:
    """Represents the minimal commit data required for line-change totals."""

    additions: int
    deletions: int
    committedDate: datetime
    repository: str
    authorLogin: Optional[str] = None
    authorId: Optional[str] = None
    authorEmail: Optional[str] = None
    oid: Optional[str] = None

    @property
    def key(self) -> Tuple[Any, ...]:
        """Identity of the commit across views; falls back to its content when no oid was fetched."""
        if self.oid:
            return (self.repository, self.oid)
        return (self.repository, self.committedDate, self.additions, self.deletions)


@dataclass(slots=True)
class PullRequestRecord:
    """Represents the minimal pull request data required for PR counts."""

    createdAt: datetime
    mergedAt: Optional[datetime]
    authorLogin: Optional[str]
    state: str
    repository: str


@dataclass(frozen=True, slots=True)
class Goal:
    """A monthly target for one metric."""

    metric: GoalMetric
    target: int


@dataclass(frozen=True, slots=True)
class MonthlyGoals:
    """The three goals supplied for a run."""

    code_changes: Goal
    pr_creation: Goal
    pr_merge: Goal


@dataclass(frozen=True, slots=True)
class ProgressResult:
    """Progress of a monthly total toward its goal."""

    current: int
    goal: int
    percent: Decimal

    @property
    def rendered(self) -> str:
        return format(self.percent, ".2f")


@dataclass(slots=True)
class FetchedActivity:
    """Raw records gathered for one run, grouped by the view they came from."""

    personal_commits: List[CommitRecord] = field(default_factory=list)
    owned_commits: List[CommitRecord] = field(default_factory=list)
    organization_commits: Dict[str, List[CommitRecord]] = field(default_factory=dict)
    pull_requests: List[PullRequestRecord] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)


@dataclass(slots=True)
class LineChangeBreakdown:
    """Line-change total for one window together with the inputs it was derived from."""

    personal: int
    owned: int
    organizations: Dict[str, int]
    overlap: int
    total: int
    clamped: bool = False


@dataclass(slots=True)
class WindowSummary:
    """Headline numbers for a single time window."""

    line_changes: LineChangeBreakdown
    prs_created: int
    prs_merged: int


@dataclass(slots=True)
class ActivitySummary:
    """Aggregated daily and monthly numbers for one run."""

    daily: WindowSummary
    monthly: WindowSummary


@dataclass(slots=True)
class ReportMessage:
    """A rendered notification: webhook JSON payload plus a plain-text version."""

    payload: Dict[str, Any]
    text: str


@dataclass(slots=True)
class DeliveryResult:
    """Outcome of a successful webhook delivery."""

    status_code: int
    body: str
