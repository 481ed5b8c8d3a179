"""Entry point and orchestration for the GitHub activity report."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

from .aggregator import Aggregator
from .cli import parse_args
from .config import load_config
from .errors import (
    AggregationError,
    AuthenticationError,
    ConfigError,
    DeliveryError,
    DomainError,
)
from .fetcher import ActivityFetcher
from .github_client import GitHubClient
from .notifier import WebhookNotifier
from .reporter import build_time_windows, remaining_days_in_month, render

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_AUTHENTICATION_ERROR = 3
EXIT_AGGREGATION_ERROR = 4
EXIT_DELIVERY_ERROR = 5

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(debug: bool) -> None:
    """Log to stderr; diagnostics only in debug mode, otherwise warnings and errors."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


def orchestrate_report(argv: Optional[Sequence[str]] = None) -> int:
    """Run one report: configure, fetch, aggregate, render and deliver.

    Returns:
        Process exit code: ``0`` on success, ``2`` for configuration errors,
        ``3`` for a missing token, ``4`` for aggregation or progress validation
        failures, ``5`` when the webhook rejects the message and ``1`` for any
        other error.
    """
    try:
        args = parse_args(argv)
        config = load_config(
            username=args.username,
            owner=args.owner,
            sources=args.sources,
            author_match=args.author_match,
            debug=args.debug,
        )
        configure_logging(config.debug)

        windows = build_time_windows(_now(), config.tzinfo)
        remaining_days = remaining_days_in_month(windows.monthly.until.date())
        logger.debug(
            "Time ranges: daily since %s, month start %s, now %s, remaining days in month %d",
            windows.daily.since.isoformat(),
            windows.monthly.since.isoformat(),
            windows.monthly.until.isoformat(),
            remaining_days,
        )

        client = GitHubClient(config=config)
        fetcher = ActivityFetcher(client=client, config=config)
        activity = fetcher.fetch_activity(windows)

        aggregator = Aggregator(sources=config.sources)
        summary = aggregator.aggregate(activity, windows)

        message = render(summary, config.goals, remaining_days)
        print(message.text)

        if args.dry_run:
            print(json.dumps(message.payload, indent=2, ensure_ascii=False))
            return EXIT_SUCCESS

        notifier = WebhookNotifier(config.webhook_url, timeout_seconds=config.timeout_seconds)
        notifier.deliver(message)
        return EXIT_SUCCESS
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION_ERROR
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (AggregationError, DomainError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AGGREGATION_ERROR
    except DeliveryError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_DELIVERY_ERROR
    except Exception as exc:
        logger.exception("Unexpected error while generating the activity report")
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR


def main(argv: Optional[Sequence[str]] = None) -> None:
    raise SystemExit(orchestrate_report(argv))


if __name__ == "__main__":
    main()
