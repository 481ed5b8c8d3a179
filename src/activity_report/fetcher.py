"""Collection of raw commit and pull request records from GitHub.

The fetcher hides which GraphQL queries are involved and isolates failures:
a repository or organization that cannot be read is logged and contributes
nothing, it never aborts the report.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .config import Config
from .errors import FetchError, PermissionDeniedError
from .github_client import GitHubClient
from .identity import AuthorMatcher
from .models import (
    CommitRecord,
    FetchedActivity,
    PullRequestRecord,
    ReportWindows,
    RepositorySource,
    TimeWindow,
)

logger = logging.getLogger(__name__)

_SCOPE_HINT = "Hint: use a token (GH_PAT) with 'repo' and 'read:org' scopes."


class ActivityFetcher:
    """Fetch the commit views selected by ``Config.sources`` and the user's pull requests."""

    def __init__(
        self,
        client: GitHubClient,
        config: Config,
        matcher: Optional[AuthorMatcher] = None,
    ) -> None:
        self._client = client
        self._config = config
        self._matcher = matcher
        self.failed_sources: List[str] = []

    @property
    def matcher(self) -> AuthorMatcher:
        """Author matcher for the configured user, resolving the user's node id on first use."""
        if self._matcher is None:
            user_id: Optional[str] = None
            try:
                user_id = self._client.get_user_id(self._config.username)
            except FetchError as exc:
                logger.warning(
                    "Could not resolve GitHub user id for %s, matching commits by login only: %s",
                    self._config.username,
                    exc,
                )
            self._matcher = AuthorMatcher(self._config.author_match, self._config.username, user_id)
        return self._matcher

    def _record_failure(self, target: str, exc: FetchError) -> None:
        self.failed_sources.append(target)
        if isinstance(exc, PermissionDeniedError):
            logger.warning("%s; %s contributes 0 to this report. %s", exc, target, _SCOPE_HINT)
        else:
            logger.warning("Skipping %s, it contributes 0 to this report: %s", target, exc)

    def _commits(self, source: RepositorySource, window: TimeWindow) -> List[CommitRecord]:
        author_only = not source.counts_all_authors
        author_id = self.matcher.server_side_author_id if author_only else None
        try:
            records = self._client.fetch_commit_history(source, window.since, author_id=author_id)
        except FetchError as exc:
            self._record_failure(source.name_with_owner, exc)
            return []

        if author_only and author_id is None:
            records = [record for record in records if self.matcher.matches(record)]

        logger.debug(
            "Fetched %d commits from %s (%s)",
            len(records),
            source.name_with_owner,
            "user's commits only" if author_only else "all authors",
        )
        return records

    def _collect(self, sources: Iterable[RepositorySource], window: TimeWindow) -> List[CommitRecord]:
        records: List[CommitRecord] = []
        for source in sources:
            records.extend(self._commits(source, window))
        return records

    def owned_repositories(self, owner: str) -> List[RepositorySource]:
        try:
            return self._client.list_owned_repositories(owner)
        except FetchError as exc:
            self._record_failure(f"repositories of {owner}", exc)
            return []

    def organization_repositories(self, org: str) -> List[RepositorySource]:
        try:
            return self._client.list_organization_repositories(org)
        except FetchError as exc:
            self._record_failure(f"organization {org}", exc)
            return []

    def contributed_repositories(self, window: TimeWindow) -> List[RepositorySource]:
        try:
            return self._client.list_contributed_repositories(self._config.username, window.since, window.until)
        except FetchError as exc:
            self._record_failure(f"contributions of {self._config.username}", exc)
            return []

    def organizations(self) -> List[str]:
        try:
            return self._client.list_organizations(self._config.username)
        except FetchError as exc:
            self._record_failure(f"organizations of {self._config.username}", exc)
            return []

    def fetch_owned_repository_commits(
        self,
        owner: str,
        window: TimeWindow,
        repositories: Optional[List[RepositorySource]] = None,
    ) -> List[CommitRecord]:
        """Fetch every commit since ``window.since`` in the non-fork repositories of ``owner``.

        All authors count: an owned repository is the user's own work area.
        """
        sources = self.owned_repositories(owner) if repositories is None else repositories
        return self._collect(sources, window)

    def fetch_organization_repository_commits(
        self,
        org: str,
        window: TimeWindow,
        repositories: Optional[List[RepositorySource]] = None,
    ) -> List[CommitRecord]:
        """Fetch the target user's commits since ``window.since`` in the repositories of ``org``.

        Organization repositories are shared, so commits by other authors are excluded.
        """
        sources = self.organization_repositories(org) if repositories is None else repositories
        return self._collect(sources, window)

    def fetch_personal_commits(
        self,
        window: TimeWindow,
        repositories: Optional[List[RepositorySource]] = None,
    ) -> List[CommitRecord]:
        """Fetch the user's own commits in every repository they contributed to during ``window``."""
        sources = self.contributed_repositories(window) if repositories is None else repositories
        return self._collect(sources, window)

    def fetch_pull_requests(self, owner: str, repo: str, window: TimeWindow) -> List[PullRequestRecord]:
        """Fetch recent pull requests of one repository that were created or merged within ``window``.

        Author filtering is left to the caller.
        """
        try:
            pull_requests = self._client.fetch_pull_requests(owner, repo)
        except FetchError as exc:
            self._record_failure(f"{owner}/{repo}", exc)
            return []

        return [
            pr
            for pr in pull_requests
            if pr.createdAt >= window.since or (pr.mergedAt is not None and pr.mergedAt >= window.since)
        ]

    def fetch_activity(self, windows: ReportWindows) -> FetchedActivity:
        """Fetch everything one report needs.

        A single query per repository covers both windows by starting at the
        earliest window start; the aggregator splits records per window later.
        """
        span = TimeWindow(since=windows.earliest_since, until=windows.monthly.until)
        sources = self._config.sources
        activity = FetchedActivity()
        repositories: Dict[str, RepositorySource] = {}

        def remember(found: Iterable[RepositorySource]) -> List[RepositorySource]:
            found = list(found)
            for source in found:
                repositories.setdefault(source.name_with_owner, source)
            return found

        if sources.includes_personal:
            contributed = remember(self.contributed_repositories(span))
            activity.personal_commits = self.fetch_personal_commits(span, repositories=contributed)

        if sources.includes_owned:
            owned = remember(self.owned_repositories(self._config.owner))
            activity.owned_commits = self.fetch_owned_repository_commits(
                self._config.owner, span, repositories=owned
            )

        if sources.includes_organizations:
            for org in self.organizations():
                org_repositories = remember(self.organization_repositories(org))
                activity.organization_commits[org] = self.fetch_organization_repository_commits(
                    org, span, repositories=org_repositories
                )

        for source in repositories.values():
            activity.pull_requests.extend(
                pr
                for pr in self.fetch_pull_requests(source.owner, source.name, span)
                if self.matcher.matches_login(pr.authorLogin)
            )

        activity.failed_sources = list(self.failed_sources)

        logger.info(
            "Fetched activity",
            extra={
                "sources": sources.value,
                "repositories": len(repositories),
                "personal_commits": len(activity.personal_commits),
                "owned_commits": len(activity.owned_commits),
                "organizations": len(activity.organization_commits),
                "pull_requests": len(activity.pull_requests),
                "failed_sources": len(activity.failed_sources),
            },
        )
        return activity
