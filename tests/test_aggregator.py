"""Tests for line-change and pull request aggregation."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from activity_report.aggregator import (
    Aggregator,
    combine_line_changes,
    count_prs,
    sum_line_changes,
    validate_count,
)
from activity_report.errors import AggregationError
from activity_report.models import (
    ActivitySources,
    CommitRecord,
    FetchedActivity,
    PRCountMode,
    PullRequestRecord,
    ReportWindows,
    TimeWindow,
)

NOW = datetime(2026, 10, 17, 12, tzinfo=timezone.utc)
DAILY = TimeWindow(since=datetime(2026, 10, 16, 12, tzinfo=timezone.utc), until=NOW)
MONTHLY = TimeWindow(since=datetime(2026, 10, 1, tzinfo=timezone.utc), until=NOW)
WINDOWS = ReportWindows(daily=DAILY, monthly=MONTHLY)


def _commit(
    additions: int,
    deletions: int = 0,
    day: int = 5,
    hour: int = 0,
    login: str | None = "alice",
    repository: str = "alice/tool",
    oid: str | None = None,
) -> CommitRecord:
    return CommitRecord(
        additions=additions,
        deletions=deletions,
        committedDate=datetime(2026, 10, day, hour, tzinfo=timezone.utc),
        repository=repository,
        authorLogin=login,
        oid=oid,
    )


def _pr(created: datetime, merged: datetime | None = None) -> PullRequestRecord:
    return PullRequestRecord(
        createdAt=created,
        mergedAt=merged,
        authorLogin="alice",
        state="MERGED" if merged else "OPEN",
        repository="alice/tool",
    )


def test_sum_line_changes_empty_is_zero():
    """Verify the sum over no records is zero."""
    assert sum_line_changes([], MONTHLY) == 0


def test_sum_line_changes_adds_additions_and_deletions_within_window():
    """Verify only records at or after the window start are summed."""
    records = [
        _commit(10, 5, day=16, hour=12),
        _commit(100, 20, day=17, hour=6),
        _commit(400, 0, day=2),
    ]

    assert sum_line_changes(records, DAILY) == 135
    assert sum_line_changes(records, MONTHLY) == 535


def test_sum_line_changes_is_monotonic_as_records_are_added():
    """Verify adding records never decreases the sum."""
    records = [_commit(3, 1), _commit(0, 0), _commit(7, 2, day=1), _commit(50, 50, day=17)]
    previous = 0

    for size in range(1, len(records) + 1):
        current = sum_line_changes(records[:size], MONTHLY)
        assert current >= previous
        previous = current


@pytest.mark.parametrize("additions", [-1, "12", 1.5, None, True])
def test_sum_line_changes_rejects_invalid_counts(additions):
    """Verify non-integer or negative counts fail aggregation instead of producing a wrong total."""
    with pytest.raises(AggregationError):
        sum_line_changes([_commit(additions)], MONTHLY)


def test_validate_count_accepts_zero():
    """Verify zero is a valid count."""
    assert validate_count("value", 0) == 0


def test_count_prs_created_and_merged():
    """Verify created and merged counts use their respective timestamps."""
    records = [
        _pr(datetime(2026, 10, 17, 9, tzinfo=timezone.utc), datetime(2026, 10, 17, 10, tzinfo=timezone.utc)),
        _pr(datetime(2026, 10, 3, tzinfo=timezone.utc)),
        _pr(datetime(2026, 9, 28, tzinfo=timezone.utc), datetime(2026, 10, 2, tzinfo=timezone.utc)),
    ]

    assert count_prs(records, DAILY, PRCountMode.CREATED) == 1
    assert count_prs(records, DAILY, PRCountMode.MERGED) == 1
    assert count_prs(records, MONTHLY, PRCountMode.CREATED) == 2
    assert count_prs(records, MONTHLY, PRCountMode.MERGED) == 2


def test_combine_line_changes_full_overlap_equals_personal():
    """Verify that when every owned line was already counted personally the total is the personal sum."""
    breakdown = combine_line_changes(personal=700, owned=300, overlap=300)

    assert breakdown.total == 700
    assert breakdown.clamped is False


def test_combine_line_changes_includes_organization_subtotals():
    """Verify organization subtotals are added before the overlap is removed."""
    breakdown = combine_line_changes(personal=100, owned=50, overlap=80, organizations={"acme": 40})

    assert breakdown.total == 110
    assert breakdown.organizations == {"acme": 40}


def test_combine_line_changes_clamps_negative_total(caplog):
    """Verify an inconsistent overlap is reported as zero with a warning."""
    with caplog.at_level(logging.WARNING, logger="activity_report.aggregator"):
        breakdown = combine_line_changes(personal=10, owned=5, overlap=40)

    assert breakdown.total == 0
    assert breakdown.clamped is True
    assert "negative" in caplog.text


@pytest.mark.parametrize(
    "personal, owned, overlap",
    [(-1, 0, 0), (0, "5", 0), (0, 0, None), (0, 0, 2.0)],
)
def test_combine_line_changes_validates_inputs(personal, owned, overlap):
    """Verify each input must be a non-negative integer before subtracting."""
    with pytest.raises(AggregationError):
        combine_line_changes(personal, owned, overlap)


def test_aggregator_owned_only_is_plain_sum():
    """Verify the owned-only mode sums every owned commit without subtraction."""
    activity = FetchedActivity(
        owned_commits=[_commit(100, 20, day=17, hour=6), _commit(400, 80, day=3, login="bob")],
    )

    summary = Aggregator(ActivitySources.OWNED).aggregate(activity, WINDOWS)

    assert summary.daily.line_changes.total == 120
    assert summary.monthly.line_changes.total == 600
    assert summary.monthly.line_changes.overlap == 0


def test_aggregator_personal_only_is_plain_sum():
    """Verify the personal-only mode sums the contributions view."""
    activity = FetchedActivity(personal_commits=[_commit(30, 3)], owned_commits=[_commit(999)])

    summary = Aggregator(ActivitySources.PERSONAL).aggregate(activity, WINDOWS)

    assert summary.monthly.line_changes.total == 33
    assert summary.monthly.line_changes.owned == 0


def test_aggregator_personal_owned_subtracts_users_commits_in_owned_repositories():
    """Verify the user's own commits in owned repositories are only counted once."""
    activity = FetchedActivity(
        personal_commits=[
            _commit(100, repository="alice/tool", oid="a1"),
            _commit(50, repository="acme/core", oid="c1"),
        ],
        owned_commits=[
            _commit(100, repository="alice/tool", oid="a1"),
            _commit(30, login="bob", repository="alice/tool", oid="b1"),
        ],
    )

    breakdown = Aggregator(ActivitySources.PERSONAL_OWNED).aggregate(activity, WINDOWS).monthly.line_changes

    assert breakdown.personal == 150
    assert breakdown.owned == 130
    assert breakdown.overlap == 100
    assert breakdown.total == 180


def test_aggregator_with_organizations_keeps_per_organization_subtotals():
    """Verify organization commits are tracked per organization and not double counted."""
    activity = FetchedActivity(
        personal_commits=[_commit(100, repository="alice/tool", oid="a1"), _commit(50, repository="acme/core", oid="c1")],
        owned_commits=[_commit(100, repository="alice/tool", oid="a1")],
        organization_commits={
            "acme": [_commit(50, repository="acme/core", oid="c1")],
            "initech": [],
        },
    )

    breakdown = Aggregator(ActivitySources.PERSONAL_OWNED_ORG).aggregate(activity, WINDOWS).monthly.line_changes

    assert breakdown.organizations == {"acme": 50, "initech": 0}
    assert breakdown.overlap == 150
    assert breakdown.total == 150


def test_aggregator_keeps_owned_lines_when_personal_view_is_empty():
    """Verify owned-repository lines still count when the contributions view yielded nothing."""
    activity = FetchedActivity(
        personal_commits=[],
        owned_commits=[_commit(100, repository="alice/tool", oid="a1")],
    )

    breakdown = Aggregator(ActivitySources.PERSONAL_OWNED).aggregate(activity, WINDOWS).monthly.line_changes

    assert breakdown.overlap == 0
    assert breakdown.total == 100
    assert breakdown.clamped is False


def test_aggregator_keeps_personal_lines_when_owned_history_is_missing():
    """Verify a repository missing from the owned view does not reduce the personal total."""
    activity = FetchedActivity(
        personal_commits=[_commit(100, repository="alice/tool", oid="a1"), _commit(20, repository="alice/cli", oid="d1")],
        owned_commits=[_commit(100, repository="alice/tool", oid="a1")],
    )

    breakdown = Aggregator(ActivitySources.PERSONAL_OWNED).aggregate(activity, WINDOWS).monthly.line_changes

    assert breakdown.total == 120


def test_aggregator_counts_organization_repository_missing_from_personal_view():
    """Verify organization commits absent from the contributions view are added to the total."""
    activity = FetchedActivity(
        personal_commits=[_commit(100, repository="alice/tool", oid="a1")],
        owned_commits=[_commit(100, repository="alice/tool", oid="a1")],
        organization_commits={"acme": [_commit(40, repository="acme/core", oid="c1")]},
    )

    breakdown = Aggregator(ActivitySources.PERSONAL_OWNED_ORG).aggregate(activity, WINDOWS).monthly.line_changes

    assert breakdown.organizations == {"acme": 40}
    assert breakdown.overlap == 100
    assert breakdown.total == 140


def test_aggregator_distinct_commits_with_equal_line_counts_are_not_merged():
    """Verify commits are matched by oid, not by their line counts."""
    activity = FetchedActivity(
        personal_commits=[_commit(100, repository="alice/tool", oid="a1")],
        owned_commits=[_commit(100, repository="alice/tool", oid="a2")],
    )

    breakdown = Aggregator(ActivitySources.PERSONAL_OWNED).aggregate(activity, WINDOWS).monthly.line_changes

    assert breakdown.overlap == 0
    assert breakdown.total == 200


def test_aggregator_counts_pull_requests_per_window():
    """Verify PR counts are computed for both windows."""
    activity = FetchedActivity(
        pull_requests=[
            _pr(datetime(2026, 10, 17, 8, tzinfo=timezone.utc)),
            _pr(datetime(2026, 10, 4, tzinfo=timezone.utc), datetime(2026, 10, 5, tzinfo=timezone.utc)),
        ]
    )

    summary = Aggregator(ActivitySources.OWNED).aggregate(activity, WINDOWS)

    assert (summary.daily.prs_created, summary.daily.prs_merged) == (1, 0)
    assert (summary.monthly.prs_created, summary.monthly.prs_merged) == (2, 1)
