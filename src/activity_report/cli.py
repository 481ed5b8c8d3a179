"""Command-line argument parsing for the GitHub activity report."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .models import ActivitySources, AuthorMatchMode


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for report generation.

    Goals, the webhook URL and the token are read from the environment; the
    options here override the corresponding environment settings.

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="github-activity-report",
        description=(
            "Summarize a GitHub user's line changes and pull requests for the last "
            "24 hours and the current month, compare them with monthly goals and "
            "post the result to a chat webhook."
        ),
    )

    parser.add_argument(
        "--username",
        default=None,
        help="GitHub login to report on (default: USERNAME environment variable).",
    )
    parser.add_argument(
        "--owner",
        default=None,
        help="Owner of the repositories counted as owned (default: REPO_OWNER or the username).",
    )
    parser.add_argument(
        "--sources",
        choices=[member.value for member in ActivitySources],
        default=None,
        help="Commit views to combine (default: ACTIVITY_SOURCES or personal+owned).",
    )
    parser.add_argument(
        "--author-match",
        choices=[member.value for member in AuthorMatchMode],
        default=None,
        help="How commits are attributed to the user (default: AUTHOR_MATCH or identity).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log raw payloads and intermediate values.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render and print the webhook payload without sending it.",
    )

    return parser.parse_args(argv)
