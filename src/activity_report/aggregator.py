"""Aggregation of fetched records into per-window totals.

This module turns raw commit and pull request records into the headline
numbers of a report:
- Lines changed (additions + deletions) per window.
- Pull requests created and merged per window.

When more than one commit view is fetched, the same commit can be seen twice:
once in the user's personal contributions and once in an owned or
organization repository. The overlap is subtracted so the combined total is
not inflated. Commits are matched across views by repository and oid.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .errors import AggregationError
from .models import (
    ActivitySources,
    ActivitySummary,
    CommitRecord,
    FetchedActivity,
    LineChangeBreakdown,
    PRCountMode,
    PullRequestRecord,
    ReportWindows,
    TimeWindow,
    WindowSummary,
)

logger = logging.getLogger(__name__)


def validate_count(name: str, value: object) -> int:
    """Return ``value`` if it is a non-negative integer.

    Raises:
        AggregationError: If the value is not an ``int`` (booleans included) or is negative.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise AggregationError(f"Invalid {name}: expected a non-negative integer, got {value!r}.")
    if value < 0:
        raise AggregationError(f"Invalid {name}: expected a non-negative integer, got {value}.")
    return value


def sum_line_changes(records: Iterable[CommitRecord], window: TimeWindow) -> int:
    """Sum ``additions + deletions`` of records committed at or after ``window.since``.

    Returns ``0`` for an empty input.

    Raises:
        AggregationError: If a record carries a non-integer or negative count.
    """
    total = 0
    for record in records:
        if record.committedDate < window.since:
            continue
        additions = validate_count(f"additions in {record.repository}", record.additions)
        deletions = validate_count(f"deletions in {record.repository}", record.deletions)
        total += additions + deletions
    return total


def count_prs(records: Iterable[PullRequestRecord], window: TimeWindow, mode: PRCountMode) -> int:
    """Count pull requests created (or merged) at or after ``window.since``."""
    if mode is PRCountMode.CREATED:
        return sum(1 for pr in records if pr.createdAt >= window.since)
    return sum(1 for pr in records if pr.mergedAt is not None and pr.mergedAt >= window.since)


def combine_line_changes(
    personal: object,
    owned: object,
    overlap: object,
    organizations: Optional[Dict[str, object]] = None,
) -> LineChangeBreakdown:
    """Combine view subtotals into a de-duplicated total.

    ``total = personal + owned + sum(organizations) - overlap``, where
    ``overlap`` is the part of the owned and organization subtotals that was
    already counted in ``personal``. A negative result means the overlap
    estimate is inconsistent; it is reported as ``0`` with ``clamped=True``.

    Raises:
        AggregationError: If any input is not a non-negative integer.
    """
    personal_lines = validate_count("personal line changes", personal)
    owned_lines = validate_count("owned repository line changes", owned)
    overlap_lines = validate_count("overlapping line changes", overlap)
    organization_lines = {
        org: validate_count(f"line changes in organization {org}", value)
        for org, value in (organizations or {}).items()
    }

    total = personal_lines + owned_lines + sum(organization_lines.values()) - overlap_lines
    clamped = False
    if total < 0:
        logger.warning(
            "Computed line-change total is negative (%d); reporting 0. "
            "The overlap estimate is inconsistent with the fetched subtotals.",
            total,
        )
        total = 0
        clamped = True

    return LineChangeBreakdown(
        personal=personal_lines,
        owned=owned_lines,
        organizations=organization_lines,
        overlap=overlap_lines,
        total=total,
        clamped=clamped,
    )


class Aggregator:
    """Reduce one run's fetched records into daily and monthly summaries.

    The same interface serves every ``ActivitySources`` mode. Single-source
    modes are a plain sum; multi-source modes subtract the lines of commits
    that were already counted in an earlier view, so the total is the line
    count of the union of all fetched views.
    """

    def __init__(self, sources: ActivitySources) -> None:
        self._sources = sources

    def _overlap(self, views: Iterable[Iterable[CommitRecord]], window: TimeWindow) -> int:
        seen: Set[Tuple[Any, ...]] = set()
        repeated: List[CommitRecord] = []
        for records in views:
            keys: Set[Tuple[Any, ...]] = set()
            for record in records:
                if record.key in seen:
                    repeated.append(record)
                keys.add(record.key)
            seen |= keys
        return sum_line_changes(repeated, window)

    def line_changes(self, activity: FetchedActivity, window: TimeWindow) -> LineChangeBreakdown:
        """Compute the line-change breakdown of one window."""
        if self._sources.is_single_source:
            if self._sources.includes_personal:
                return combine_line_changes(sum_line_changes(activity.personal_commits, window), 0, 0)
            return combine_line_changes(0, sum_line_changes(activity.owned_commits, window), 0)

        personal = sum_line_changes(activity.personal_commits, window)
        owned = sum_line_changes(activity.owned_commits, window)
        views: List[List[CommitRecord]] = [activity.personal_commits, activity.owned_commits]

        organizations: Dict[str, object] = {}
        if self._sources.includes_organizations:
            for org, records in activity.organization_commits.items():
                organizations[org] = sum_line_changes(records, window)
                views.append(records)

        return combine_line_changes(personal, owned, self._overlap(views, window), organizations)

    def summarize(self, activity: FetchedActivity, window: TimeWindow) -> WindowSummary:
        line_changes = self.line_changes(activity, window)
        return WindowSummary(
            line_changes=line_changes,
            prs_created=count_prs(activity.pull_requests, window, PRCountMode.CREATED),
            prs_merged=count_prs(activity.pull_requests, window, PRCountMode.MERGED),
        )

    def aggregate(self, activity: FetchedActivity, windows: ReportWindows) -> ActivitySummary:
        """Aggregate fetched activity for the daily and monthly windows.

        Raises:
            AggregationError: If any intermediate count fails validation.
        """
        summary = ActivitySummary(
            daily=self.summarize(activity, windows.daily),
            monthly=self.summarize(activity, windows.monthly),
        )

        for label, window_summary in (("daily", summary.daily), ("monthly", summary.monthly)):
            breakdown = window_summary.line_changes
            logger.debug(
                "Aggregated %s window: personal=%d owned=%d organizations=%s overlap=%d total=%d "
                "prs_created=%d prs_merged=%d",
                label,
                breakdown.personal,
                breakdown.owned,
                breakdown.organizations,
                breakdown.overlap,
                breakdown.total,
                window_summary.prs_created,
                window_summary.prs_merged,
            )

        return summary
