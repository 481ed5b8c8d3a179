"""Progress calculations and message rendering for the activity report.

This module provides utilities for:
- Building the daily and monthly time windows of a run.
- Computing percent-of-goal progress rounded to two decimals.
- Counting the days left in the current month (today included).
- Rendering the Slack Block Kit payload and a plain-text version of it.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List

from .errors import DomainError
from .models import ActivitySummary, MonthlyGoals, ProgressResult, ReportMessage, ReportWindows, TimeWindow

_TWO_PLACES = Decimal("0.01")

REPORT_TITLE = "📊 GitHub Activity Report"


def compute_progress(current: int, goal: int) -> ProgressResult:
    """Compute ``current * 100 / goal`` rounded half-up to two decimal places.

    Raises:
        DomainError: If ``goal`` is not greater than ``0``.
    """
    if goal <= 0:
        raise DomainError(f"Goal must be greater than 0 to compute progress, got {goal}.")

    percent = (Decimal(current) * 100 / Decimal(goal)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    return ProgressResult(current=current, goal=goal, percent=percent)


def remaining_days_in_month(today: date) -> int:
    """Return the number of days left in ``today``'s month, counting today."""
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    return days_in_month - today.day + 1


def build_time_windows(now: datetime, tz: tzinfo) -> ReportWindows:
    """Build the trailing-24-hours and month-to-date windows ending at ``now``.

    The daily window is 24 elapsed hours, also across DST changes. The month
    start is midnight of the first day of the month in ``tz``.
    """
    local_now = now.astimezone(tz)
    day_ago = (now.astimezone(timezone.utc) - timedelta(hours=24)).astimezone(tz)
    month_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return ReportWindows(
        daily=TimeWindow(since=day_ago, until=local_now),
        monthly=TimeWindow(since=month_start, until=local_now),
    )


def _progress_line(label: str, progress: ProgressResult) -> str:
    return f"• {label}: {progress.current}/{progress.goal} ({progress.rendered}%)"


def render(summary: ActivitySummary, goals: MonthlyGoals, remaining_days: int) -> ReportMessage:
    """Render today's totals and monthly progress as a webhook message.

    Args:
        summary: Aggregated daily and monthly numbers.
        goals: Monthly goals to compare against.
        remaining_days: Days left in the month, today included.

    Returns:
        A ``ReportMessage`` with a Block Kit ``payload`` and a ``text`` version.
    """
    daily = summary.daily
    monthly = summary.monthly

    changes_progress = compute_progress(monthly.line_changes.total, goals.code_changes.target)
    creation_progress = compute_progress(monthly.prs_created, goals.pr_creation.target)
    merge_progress = compute_progress(monthly.prs_merged, goals.pr_merge.target)

    daily_text = "\n".join(
        [
            "*Today's Total Activity*",
            f"• Code Changes: {daily.line_changes.total} lines",
            f"• PRs Created: {daily.prs_created}",
            f"• PRs Merged: {daily.prs_merged}",
        ]
    )
    monthly_text = "\n".join(
        [
            "*Monthly Total*",
            _progress_line("Code Changes", changes_progress),
            _progress_line("PRs Created", creation_progress),
            _progress_line("PRs Merged", merge_progress),
            f"*Remaining Days in Month: {remaining_days}*",
        ]
    )

    blocks: List[Dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": REPORT_TITLE}},
        {"type": "section", "text": {"type": "mrkdwn", "text": daily_text}},
        {"type": "section", "text": {"type": "mrkdwn", "text": monthly_text}},
    ]

    text = "\n\n".join([REPORT_TITLE, daily_text, monthly_text]).replace("*", "")
    return ReportMessage(payload={"text": REPORT_TITLE, "blocks": blocks}, text=text)
